"""
Data models for container bootstrap.

Definitions describe the desired state of a container and are read from
camelCase JSON documents. ContainerState mirrors the output of
``docker container inspect`` and is read-only from our side: the engine owns it.
"""

from dataclasses import dataclass, field
from typing import Any

from .errors import DefinitionParseError


@dataclass
class VolumeBinding:
    """A logical volume type mounted at a path inside the container."""

    type: str  # Logical type, resolved to a concrete volume at create time
    mount_point: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "mountPoint": self.mount_point}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VolumeBinding":
        return cls(type=data["type"], mount_point=data["mountPoint"])


@dataclass
class PortBinding:
    """A container port published on the host."""

    container_port: int
    host_port: int

    def to_dict(self) -> dict[str, Any]:
        return {"containerPort": self.container_port, "hostPort": self.host_port}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PortBinding":
        return cls(
            container_port=int(data["containerPort"]),
            host_port=int(data["hostPort"]),
        )


@dataclass
class SftpSettings:
    """SFTP access requested for a definition's content volume."""

    host_port: int
    volume_type: str

    def to_dict(self) -> dict[str, Any]:
        return {"hostPort": self.host_port, "volumeType": self.volume_type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SftpSettings":
        return cls(host_port=int(data["hostPort"]), volume_type=data["volumeType"])


def _env_value(key: Any, value: Any) -> str:
    """Render a JSON scalar as an environment variable value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"env '{key}' must be a string, number or boolean, got {value!r}")


@dataclass
class ContainerDefinition:
    """
    Desired state of one deployable container.

    The name is the reconciliation key: a container whose name matches is
    considered deployed, regardless of its image or flags.
    """

    name: str
    image: str | None = None  # None only for the built-in reverse proxy
    host_route: str | None = None
    path_route: str | None = None
    volumes: list[VolumeBinding] = field(default_factory=list)
    ports: list[PortBinding] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    sftp: SftpSettings | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert definition to its JSON document shape."""
        result: dict[str, Any] = {"name": self.name, "image": self.image}
        if self.host_route is not None:
            result["hostRoute"] = self.host_route
        if self.path_route is not None:
            result["pathRoute"] = self.path_route
        result["volumes"] = [v.to_dict() for v in self.volumes]
        result["ports"] = [p.to_dict() for p in self.ports]
        result["env"] = dict(self.env)
        if self.sftp is not None:
            result["sftp"] = self.sftp.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Any) -> "ContainerDefinition":
        """
        Create a definition from one entry of a definition document.

        Raises:
            DefinitionParseError: If the entry is not an object, lacks a name,
                                  or has malformed volume/port/sftp blocks
        """
        if not isinstance(data, dict):
            raise DefinitionParseError(
                f"Container definition must be an object, got {type(data).__name__}"
            )
        if not data.get("name"):
            raise DefinitionParseError("Container definition is missing 'name'")
        if not isinstance(data["name"], str):
            raise DefinitionParseError(
                f"Container definition 'name' must be a string, got {data['name']!r}"
            )

        try:
            sftp = data.get("sftp")
            return cls(
                name=data["name"],
                image=data.get("image"),
                host_route=data.get("hostRoute"),
                path_route=data.get("pathRoute"),
                volumes=[VolumeBinding.from_dict(v) for v in data.get("volumes") or []],
                ports=[PortBinding.from_dict(p) for p in data.get("ports") or []],
                env={str(k): _env_value(k, v) for k, v in (data.get("env") or {}).items()},
                sftp=SftpSettings.from_dict(sftp) if sftp else None,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DefinitionParseError(
                f"Invalid container definition '{data['name']}': {e!r}"
            ) from e


@dataclass
class ContainerRunState:
    """Run status reported by the engine. Values are passed through verbatim."""

    status: str
    running: bool = False
    paused: bool = False
    restarting: bool = False
    dead: bool = False
    pid: int = 0
    exit_code: int | None = None
    error: str = ""
    started_at: str | None = None
    finished_at: str | None = None

    @classmethod
    def from_inspect(cls, data: dict[str, Any]) -> "ContainerRunState":
        return cls(
            status=data.get("Status", ""),
            running=bool(data.get("Running", False)),
            paused=bool(data.get("Paused", False)),
            restarting=bool(data.get("Restarting", False)),
            dead=bool(data.get("Dead", False)),
            pid=data.get("Pid", 0),
            exit_code=data.get("ExitCode"),
            error=data.get("Error", ""),
            started_at=data.get("StartedAt"),
            finished_at=data.get("FinishedAt"),
        )


@dataclass
class ContainerMount:
    type: str
    source: str
    destination: str


@dataclass
class ContainerConfig:
    """Configuration snapshot of a running container."""

    hostname: str = ""
    exposed_ports: dict[str, Any] = field(default_factory=dict)
    env: list[str] = field(default_factory=list)
    cmd: list[str] = field(default_factory=list)
    image: str = ""
    volumes: dict[str, Any] = field(default_factory=dict)
    entrypoint: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_inspect(cls, data: dict[str, Any]) -> "ContainerConfig":
        # docker reports empty collections as null
        return cls(
            hostname=data.get("Hostname") or "",
            exposed_ports=data.get("ExposedPorts") or {},
            env=data.get("Env") or [],
            cmd=data.get("Cmd") or [],
            image=data.get("Image") or "",
            volumes=data.get("Volumes") or {},
            entrypoint=data.get("Entrypoint") or [],
            labels=data.get("Labels") or {},
        )


@dataclass
class ContainerState:
    """
    Observed state of a container, as returned by ``docker container inspect``.

    Only the fields this package reports on are modelled; everything else
    in the inspect document is ignored.
    """

    id: str
    name: str
    created: str
    state: ContainerRunState
    restart_count: int = 0
    mounts: list[ContainerMount] = field(default_factory=list)
    config: ContainerConfig = field(default_factory=ContainerConfig)

    @property
    def status(self) -> str:
        return self.state.status

    @classmethod
    def from_inspect(cls, data: dict[str, Any]) -> "ContainerState":
        """
        Create a state from one element of the inspect JSON array.

        Raises:
            KeyError: If the element has no Id
        """
        return cls(
            id=data["Id"],
            # docker prefixes names with "/"
            name=(data.get("Name") or "").lstrip("/"),
            created=data.get("Created", ""),
            state=ContainerRunState.from_inspect(data.get("State") or {}),
            restart_count=data.get("RestartCount", 0),
            mounts=[
                ContainerMount(
                    type=m.get("Type", ""),
                    source=m.get("Source", ""),
                    destination=m.get("Destination", ""),
                )
                for m in data.get("Mounts") or []
            ],
            config=ContainerConfig.from_inspect(data.get("Config") or {}),
        )

    def to_summary_dict(self) -> dict[str, Any]:
        """Convert state to summary format (for CLI listings)."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.state.status,
            "image": self.config.image,
            "created": self.created,
            "restart_count": self.restart_count,
        }


@dataclass(frozen=True)
class Volume:
    """A concrete engine volume backing one logical volume type."""

    name: str
    type: str


@dataclass
class EnvironmentDefinition:
    """
    Target environment a command is executed against.

    Supplied from an environment document; never computed here.
    """

    environment_name: str
    url_map: dict[str, str] = field(default_factory=dict)
    docker_host: str | None = None  # e.g. "tcp://10.0.0.5:2376" or "ssh://deploy@host"
    tls_verify: bool = False
    cert_path: str | None = None

    def resolve_host(self, host_route: str) -> str:
        """Substitute a logical host through the URL alias table."""
        return self.url_map.get(host_route, host_route)

    @classmethod
    def from_dict(cls, data: Any) -> "EnvironmentDefinition":
        """
        Create an environment from its JSON document.

        Raises:
            DefinitionParseError: If the document is not an object or lacks a name
        """
        if not isinstance(data, dict) or not data.get("environmentName"):
            raise DefinitionParseError(
                "Environment definition must be an object with 'environmentName'"
            )
        url_map = data.get("urlMap") or {}
        if not isinstance(url_map, dict):
            raise DefinitionParseError("Environment 'urlMap' must be an object")
        return cls(
            environment_name=data["environmentName"],
            url_map={str(k): str(v) for k, v in url_map.items()},
            docker_host=data.get("dockerHost"),
            tls_verify=bool(data.get("tlsVerify", False)),
            cert_path=data.get("certPath"),
        )
