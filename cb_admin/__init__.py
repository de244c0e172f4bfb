"""Admin CLI for container bootstrap."""
