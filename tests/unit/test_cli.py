"""
Unit tests for the cb-admin CLI.

Commands are invoked in-process with click's CliRunner; docker is
replaced by FakeDocker.
"""

import json

import pytest
from click.testing import CliRunner

from cb_admin.cli import cli, get_definitions_dir, get_echo_commands


@pytest.fixture
def environments_dir(tmp_path):
    path = tmp_path / "environments"
    path.mkdir()
    (path / "test.json").write_text(
        json.dumps(
            {"environmentName": "test", "urlMap": {"blog.example.com": "blog.internal"}}
        )
    )
    (path / "prod.json").write_text(
        json.dumps({"environmentName": "prod", "dockerHost": "tcp://10.0.0.5:2376"})
    )
    return path


@pytest.fixture
def invoke(definitions_dir, environments_dir):
    """Invoke cb-admin with the test definitions and environments."""
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(
            cli,
            [
                "--definitions-dir", str(definitions_dir),
                "--environments-dir", str(environments_dir),
                "--env", "test",
                *args,
            ],
        )

    return _invoke


class TestConfiguration:
    """Test suite for option/environment variable resolution."""

    def test_cli_arg_wins(self, monkeypatch):
        monkeypatch.setenv("CB_DEFINITIONS_DIR", "/from/env")
        assert get_definitions_dir("/from/cli") == "/from/cli"

    def test_env_var_fallback(self, monkeypatch):
        monkeypatch.setenv("CB_DEFINITIONS_DIR", "/from/env")
        assert get_definitions_dir() == "/from/env"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("CB_DEFINITIONS_DIR", raising=False)
        assert get_definitions_dir() == "containers"

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("0", False), ("", False)])
    def test_echo_from_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("CB_ECHO_COMMANDS", value)
        assert get_echo_commands() is expected


class TestCommands:
    """Test suite for cb-admin commands."""

    def test_list(self, invoke):
        result = invoke("list", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == ["blog", "broken", "site", "stack"]

    def test_show_includes_sidecar(self, invoke):
        result = invoke("show", "site")

        assert result.exit_code == 0
        names = [d["name"] for d in json.loads(result.output)]
        assert names == ["site", "site-sftp"]

    def test_show_missing(self, invoke):
        result = invoke("show", "nope")

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_create(self, invoke, fake_docker):
        result = invoke("create", "site", "--json")

        assert result.exit_code == 0
        states = json.loads(result.output)
        assert [s["name"] for s in states] == ["site", "site-sftp"]
        assert all(s["status"] == "running" for s in states)

    def test_create_engine_failure(self, invoke, fake_docker):
        fake_docker.failing_runs.add("blog")

        result = invoke("create", "blog")

        assert result.exit_code == 1
        assert "cannot start blog" in result.output

    def test_delete(self, invoke, fake_docker):
        fake_docker.add_container("blog")

        result = invoke("delete", "blog")

        assert result.exit_code == 0
        assert fake_docker.containers == {}

    def test_proxy(self, invoke, fake_docker):
        result = invoke("proxy")

        assert result.exit_code == 0
        assert "traefik_proxy" in result.output
        assert len(fake_docker.runs()) == 1

    def test_status(self, invoke, fake_docker, definitions_dir):
        (definitions_dir / "README.md").write_text("notes")
        fake_docker.add_container("api")

        result = invoke("status", "--json")

        assert result.exit_code == 0
        rows = {r["container"]: r["status"] for r in json.loads(result.output)}
        assert rows["api"] == "running"
        assert rows["worker"] == "absent"
        assert rows["site-sftp"] == "absent"

    def test_missing_docker_binary(self, invoke):
        result = invoke("--docker-binary", "/nonexistent/docker", "delete", "blog")

        assert result.exit_code == 0

    def test_volumes(self, invoke, fake_docker):
        fake_docker.add_volume("vol-a", "content")

        result = invoke("volumes")

        assert result.exit_code == 0
        assert "content" in result.output
        assert "vol-a" in result.output

    def test_environments(self, invoke):
        result = invoke("environments")

        assert result.exit_code == 0
        assert "* test" in result.output
        assert "  prod" in result.output

    def test_unknown_environment(self, definitions_dir, environments_dir, fake_docker):
        result = CliRunner().invoke(
            cli,
            [
                "--definitions-dir", str(definitions_dir),
                "--environments-dir", str(environments_dir),
                "--env", "staging",
                "create", "blog",
            ],
        )

        assert result.exit_code == 1
        assert "staging" in result.output
        assert fake_docker.calls == []
