"""
Shared fixtures for the container bootstrap test suites.

FakeDocker stands in for the docker CLI: it is patched over
asyncio.create_subprocess_exec and answers the subcommands the controller
uses from an in-memory set of containers and volumes.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from cb_common.models import EnvironmentDefinition


class FakeDocker:
    """In-memory docker CLI recording every invocation."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.envs: list[dict | None] = []
        self.containers: dict[str, dict] = {}  # name -> inspect document
        self.volumes: dict[str, str] = {}  # volume name -> logical type
        self.failing_runs: set[str] = set()  # container names whose run fails
        self.failing_removes: set[str] = set()
        self._next_id = 1

    def _new_id(self) -> str:
        container_id = f"{self._next_id:064x}"
        self._next_id += 1
        return container_id

    def add_container(self, name: str, status: str = "running") -> dict:
        """Seed a container as if it had been created outside the test."""
        doc = {
            "Id": self._new_id(),
            "Name": f"/{name}",
            "Created": "2024-05-01T12:00:00.000000000Z",
            "State": {"Status": status, "Running": status == "running", "ExitCode": 0},
            "RestartCount": 0,
            "Mounts": None,
            "Config": {"Image": "seeded", "Env": None, "Labels": None},
        }
        self.containers[name] = doc
        return doc

    def add_volume(self, name: str, volume_type: str) -> None:
        self.volumes[name] = volume_type

    def runs(self) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == "run"]

    def removes(self) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == "rm"]

    def inspects(self) -> list[list[str]]:
        return [c for c in self.calls if c[:2] == ["container", "inspect"]]

    def _find(self, key: str) -> dict | None:
        for name, doc in self.containers.items():
            if key in (name, doc["Id"]):
                return doc
        return None

    def _handle(self, args: list[str]) -> tuple[int, str, str]:
        if args[:2] == ["container", "inspect"]:
            doc = self._find(args[2])
            if doc is None:
                return 1, "[]", f"Error: No such container: {args[2]}"
            return 0, json.dumps([doc]), ""

        if args and args[0] == "run":
            name = args[args.index("--name") + 1]
            if name in self.failing_runs:
                return 125, "", f"docker: Error response from daemon: cannot start {name}."
            if name in self.containers:
                return 125, "", f'Conflict. The container name "/{name}" is already in use'
            doc = self.add_container(name)
            doc["Config"]["Image"] = args[-1]
            return 0, doc["Id"] + "\n", ""

        if args and args[0] == "rm":
            container_id = args[-1]
            for name, doc in list(self.containers.items()):
                if doc["Id"] == container_id:
                    if name in self.failing_removes:
                        return 1, "", f"Error: cannot remove {name}"
                    del self.containers[name]
                    return 0, container_id + "\n", ""
            return 1, "", f"Error: No such container: {container_id}"

        if args[:2] == ["volume", "ls"]:
            label_filter = args[args.index("--filter") + 1]
            _, _, wanted = label_filter.partition("=")
            _, _, wanted_type = wanted.partition("=")
            lines = []
            for name, volume_type in self.volumes.items():
                if not wanted_type:
                    lines.append(f"{name}\t{volume_type}")
                elif volume_type == wanted_type:
                    lines.append(name)
            return 0, "\n".join(lines) + ("\n" if lines else ""), ""

        if args[:2] == ["volume", "create"]:
            _, _, volume_type = args[args.index("--label") + 1].partition("=")
            name = f"vol{len(self.volumes) + 1:04d}"
            self.volumes[name] = volume_type
            return 0, name + "\n", ""

        return 1, "", f"unknown command: {args}"

    async def __call__(self, *command, stdout=None, stderr=None, env=None):
        args = list(command[1:])
        self.calls.append(args)
        self.envs.append(env)

        returncode, out, err = self._handle(args)

        process = AsyncMock()
        process.communicate = AsyncMock(return_value=(out.encode(), err.encode()))
        process.returncode = returncode
        return process


@pytest.fixture
def fake_docker():
    """Patch the subprocess layer with a FakeDocker for the duration of a test."""
    docker = FakeDocker()
    with patch("asyncio.create_subprocess_exec", new=docker):
        yield docker


@pytest.fixture
def environment():
    return EnvironmentDefinition(
        environment_name="test",
        url_map={"blog.example.com": "blog.internal"},
    )


@pytest.fixture
def definitions_dir(tmp_path):
    """A definitions directory with a few representative documents."""
    path = tmp_path / "containers"
    path.mkdir()

    (path / "blog.json").write_text(
        json.dumps(
            {
                "name": "blog",
                "image": "nginx",
                "hostRoute": "blog.example.com",
                "volumes": [{"type": "content", "mountPoint": "/var/www"}],
            }
        )
    )
    (path / "site.json").write_text(
        json.dumps(
            {
                "name": "site",
                "image": "nginx:1.25",
                "hostRoute": "www.example.com",
                "pathRoute": "/site",
                "volumes": [
                    {"type": "content", "mountPoint": "/usr/share/nginx/html"},
                    {"type": "logs", "mountPoint": "/var/log/nginx"},
                ],
                "ports": [
                    {"containerPort": 80, "hostPort": 8081},
                    {"containerPort": 443, "hostPort": 8443},
                ],
                "env": {"server_name": "www.example.com", "Workers": "4"},
                "sftp": {"hostPort": 2222, "volumeType": "content"},
            }
        )
    )
    (path / "stack.json").write_text(
        json.dumps(
            [
                {"name": "api", "image": "example/api:2"},
                {"name": "worker", "image": "example/worker:2"},
            ]
        )
    )
    (path / "broken.json").write_text("{ not json")
    return path
