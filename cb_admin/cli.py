"""
Admin CLI for bootstrapping containers on a target host.

Provides commands to list, create and delete the containers described by
definition documents, and to start the reverse proxy they are routed through.
"""

import asyncio
import json
import logging
import os
import sys

import click

from cb_common.errors import BootstrapError
from cb_common.models import EnvironmentDefinition
from cb_controller.container_manager import ContainerManager
from cb_controller.definitions import DefinitionStore
from cb_controller.environment import list_environments, load_environment
from cb_controller.volume_manager import VolumeManager

TRUTHY = {"1", "true", "yes", "y", "on"}


def get_definitions_dir(cli_arg: str | None = None) -> str:
    """Get the definitions directory from CLI args, environment, or default."""
    if cli_arg:
        return cli_arg
    return os.environ.get("CB_DEFINITIONS_DIR", "containers")


def get_environments_dir(cli_arg: str | None = None) -> str:
    """Get the environments directory from CLI args, environment, or default."""
    if cli_arg:
        return cli_arg
    return os.environ.get("CB_ENVIRONMENTS_DIR", "environments")


def get_environment_name(cli_arg: str | None = None) -> str:
    """Get the target environment name from CLI args, environment, or default."""
    if cli_arg:
        return cli_arg
    return os.environ.get("CB_ENVIRONMENT", "local")


def get_docker_binary(cli_arg: str | None = None) -> str:
    """Get the docker executable from CLI args, environment, or default."""
    if cli_arg:
        return cli_arg
    return os.environ.get("CB_DOCKER_BINARY", "docker")


def get_echo_commands(cli_flag: bool = False) -> bool:
    """Check whether docker command lines should be echoed."""
    if cli_flag:
        return True
    return os.environ.get("CB_ECHO_COMMANDS", "").strip().lower() in TRUTHY


def run_async(coro):
    """Run a coroutine, reporting bootstrap errors and exiting with status 1."""
    try:
        return asyncio.run(coro)
    except BootstrapError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


class CliContext:
    """Settings resolved by the top-level group, shared with subcommands."""

    def __init__(
        self,
        definitions_dir: str,
        environments_dir: str,
        environment_name: str,
        docker_binary: str,
        echo_commands: bool,
    ):
        self.definitions_dir = definitions_dir
        self.environments_dir = environments_dir
        self.environment_name = environment_name
        self.docker_binary = docker_binary
        self.echo_commands = echo_commands

    def store(self) -> DefinitionStore:
        return DefinitionStore(self.definitions_dir)

    def manager(self) -> ContainerManager:
        return ContainerManager(
            self.store(),
            docker_binary=self.docker_binary,
            echo_commands=self.echo_commands,
        )

    def environment(self) -> EnvironmentDefinition:
        try:
            return load_environment(self.environments_dir, self.environment_name)
        except BootstrapError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)


pass_cli_context = click.make_pass_decorator(CliContext)


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level (default: WARNING)",
)
@click.option("--definitions-dir", help="Directory of container definition documents")
@click.option("--environments-dir", help="Directory of environment documents")
@click.option("--env", "environment_name", help="Target environment name")
@click.option("--docker-binary", help="docker executable to invoke")
@click.option("--echo", is_flag=True, help="Log docker command lines before running them")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str,
    definitions_dir: str | None,
    environments_dir: str | None,
    environment_name: str | None,
    docker_binary: str | None,
    echo: bool,
):
    """Container Bootstrap - Reconcile container definitions with a docker host."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    echo_commands = get_echo_commands(echo)
    if echo_commands and logging.getLogger("cb_controller").getEffectiveLevel() > logging.INFO:
        # echoed commands are logged at INFO
        logging.getLogger("cb_controller").setLevel(logging.INFO)

    ctx.obj = CliContext(
        definitions_dir=get_definitions_dir(definitions_dir),
        environments_dir=get_environments_dir(environments_dir),
        environment_name=get_environment_name(environment_name),
        docker_binary=get_docker_binary(docker_binary),
        echo_commands=echo_commands,
    )


@cli.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@pass_cli_context
def list_definitions(obj: CliContext, json_output: bool):
    """List available container definitions."""
    names = sorted(run_async(obj.store().list_available()))

    if json_output:
        click.echo(json.dumps(names, indent=2))
        return

    if not names:
        click.echo("No container definitions found.")
        return
    for name in names:
        click.echo(name)


@cli.command("show")
@click.argument("name")
@pass_cli_context
def show_definition(obj: CliContext, name: str):
    """Show the resolved definitions for NAME, sidecars included."""
    definitions = run_async(obj.store().resolve(name))
    click.echo(json.dumps([d.to_dict() for d in definitions], indent=2))


@cli.command("create")
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@pass_cli_context
def create_containers(obj: CliContext, name: str, json_output: bool):
    """Create the containers defined for NAME."""
    environment = obj.environment()
    states = run_async(obj.manager().create(environment, name))

    if json_output:
        click.echo(json.dumps([s.to_summary_dict() for s in states], indent=2))
        return

    for state in states:
        click.echo(f"✓ {state.name:<30} {state.id[:12]:<14} {state.status}")


@cli.command("delete")
@click.argument("name")
@pass_cli_context
def delete_containers(obj: CliContext, name: str):
    """Delete the containers defined for NAME."""
    environment = obj.environment()
    run_async(obj.manager().delete(environment, name))
    click.echo(f"✓ Containers for {name} removed")


@cli.command("proxy")
@pass_cli_context
def ensure_proxy(obj: CliContext):
    """Start the reverse proxy if it is not already running."""
    environment = obj.environment()
    state = run_async(obj.manager().ensure_reverse_proxy(environment))
    click.echo(f"✓ {state.name:<30} {state.id[:12]:<14} {state.status}")


@cli.command("status")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@pass_cli_context
def status(obj: CliContext, json_output: bool):
    """Show which defined containers exist on the target host."""
    environment = obj.environment()
    status_map = run_async(obj.manager().list_status(environment))

    rows = []
    for name in sorted(status_map):
        for definition, state in status_map[name]:
            rows.append(
                {
                    "definition": name,
                    "container": definition.name,
                    "id": state.id if state else None,
                    "status": state.status if state else "absent",
                }
            )

    if json_output:
        click.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        click.echo("No container definitions found.")
        return

    click.echo(f"\n{'Definition':<20} {'Container':<30} {'ID':<14} {'Status':<12}")
    click.echo("-" * 78)
    for row in rows:
        short_id = row["id"][:12] if row["id"] else "-"
        click.echo(
            f"{row['definition']:<20} {row['container']:<30} {short_id:<14} {row['status']:<12}"
        )
    click.echo()


@cli.command("volumes")
@pass_cli_context
def volumes(obj: CliContext):
    """List the volumes backing logical volume types."""
    environment = obj.environment()
    manager = VolumeManager(
        environment, docker_binary=obj.docker_binary, echo_command=obj.echo_commands
    )
    found = run_async(manager.list_volumes())

    if not found:
        click.echo("No volumes found.")
        return
    for volume in found:
        click.echo(f"{volume.type:<20} {volume.name}")


@cli.command("environments")
@pass_cli_context
def environments(obj: CliContext):
    """List available environments."""
    try:
        names = list_environments(obj.environments_dir)
    except BootstrapError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for name in names:
        marker = "*" if name == obj.environment_name else " "
        click.echo(f"{marker} {name}")


def main():
    cli()


if __name__ == "__main__":
    main()
