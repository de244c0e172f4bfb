"""
Volume manager mapping logical volume types to docker volumes.

Each logical type (e.g. "content", "ssh_key") is backed by exactly one
docker volume on the host, found by its ``cb.volume-type`` label. The
volume is created the first time the type is referenced and reused after.
"""

import asyncio
import logging
from collections import defaultdict

from cb_common.models import EnvironmentDefinition, Volume

from .runner import DockerRunner

logger = logging.getLogger(__name__)

VOLUME_TYPE_LABEL = "cb.volume-type"


class VolumeManager:
    """
    Finds or creates the docker volume for a logical volume type.

    The lookup and the create are two separate docker invocations, so the
    sequence is not atomic on the host. Calls through one manager are
    serialized per type; callers sharing a host across managers must
    serialize on their own.
    """

    def __init__(
        self,
        environment: EnvironmentDefinition,
        docker_binary: str = "docker",
        echo_command: bool = False,
    ):
        self.environment = environment
        self.docker_binary = docker_binary
        self.echo_command = echo_command
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _runner(self) -> DockerRunner:
        return DockerRunner(
            self.environment,
            docker_binary=self.docker_binary,
            echo_command=self.echo_command,
        )

    async def find_volume(self, volume_type: str) -> Volume | None:
        """
        Look up the volume for a logical type.

        Returns:
            The first labeled volume docker lists, or None
        """
        output = await (
            self._runner()
            .arg("volume", "ls")
            .arg("--filter", f"label={VOLUME_TYPE_LABEL}={volume_type}")
            .arg("--format", "{{.Name}}")
            .exec()
        )
        names = [n for n in output.splitlines() if n.strip()]
        if not names:
            return None
        return Volume(name=names[0].strip(), type=volume_type)

    async def get_or_create(self, volume_type: str) -> Volume:
        """
        Return the volume for a logical type, creating it if needed.

        Args:
            volume_type: Logical volume type from a container definition

        Returns:
            Volume with the concrete docker volume name

        Raises:
            EngineExecutionError: If listing or creating the volume fails
        """
        async with self._locks[volume_type]:
            volume = await self.find_volume(volume_type)
            if volume is not None:
                logger.debug(f"Reusing volume {volume.name} for type '{volume_type}'")
                return volume

            runner = (
                self._runner()
                .arg("volume", "create")
                .arg("--label", f"{VOLUME_TYPE_LABEL}={volume_type}")
            )
            runner.output_command()
            name = await runner.exec()

            logger.info(f"Created volume {name} for type '{volume_type}'")
            return Volume(name=name, type=volume_type)

    async def list_volumes(self) -> list[Volume]:
        """List every labeled volume on the host with its logical type."""
        output = await (
            self._runner()
            .arg("volume", "ls")
            .arg("--filter", f"label={VOLUME_TYPE_LABEL}")
            .arg("--format", f'{{{{.Name}}}}\t{{{{.Label "{VOLUME_TYPE_LABEL}"}}}}')
            .exec()
        )

        volumes = []
        for line in output.splitlines():
            if not line.strip():
                continue
            name, _, volume_type = line.partition("\t")
            volumes.append(Volume(name=name.strip(), type=volume_type.strip()))
        return volumes
