"""
Container manager reconciling container definitions with docker.

This module compares the desired state (definition documents) with the
actual state (containers on the target host) by container name, and
creates or removes containers to close the gap. Every docker invocation
is awaited before the next one starts, so containers are always created
and removed in definition order.
"""

import json
import logging
from collections.abc import Sequence

from cb_common.errors import (
    BootstrapError,
    DefinitionNotFound,
    DefinitionParseError,
    EngineExecutionError,
)
from cb_common.models import ContainerDefinition, ContainerState, EnvironmentDefinition

from .definitions import TRAEFIK_PROXY_NAME, DefinitionStore
from .runner import DockerRunner
from .volume_manager import VolumeManager

logger = logging.getLogger(__name__)

TRAEFIK_IMAGE = "traefik"
TRAEFIK_RULE_LABEL = "traefik.frontend.rule"

DeleteTarget = str | ContainerDefinition | Sequence[ContainerDefinition] | None


class ContainerManager:
    """
    Creates and removes containers described by container definitions.

    Existence by name is the only comparison made: a container that
    exists under a definition's name is left untouched even if its image
    or flags differ from the definition.
    """

    def __init__(
        self,
        definition_store: DefinitionStore,
        docker_binary: str = "docker",
        echo_commands: bool = False,
    ):
        """
        Initialize the container manager.

        Args:
            definition_store: Source of container definitions
            docker_binary: Path or name of the docker executable
            echo_commands: Log each run/rm command line before executing it
        """
        self.definition_store = definition_store
        self.docker_binary = docker_binary
        self.echo_commands = echo_commands

    def _runner(self, environment: EnvironmentDefinition) -> DockerRunner:
        return DockerRunner(
            environment,
            docker_binary=self.docker_binary,
            echo_command=self.echo_commands,
        )

    def _volume_manager(self, environment: EnvironmentDefinition) -> VolumeManager:
        return VolumeManager(
            environment,
            docker_binary=self.docker_binary,
            echo_command=self.echo_commands,
        )

    async def get_container(
        self, environment: EnvironmentDefinition, name: str
    ) -> ContainerState | None:
        """
        Inspect a container by name or ID.

        Args:
            environment: Target environment
            name: Container name or ID

        Returns:
            ContainerState if the container exists, None otherwise. Inspection
            failures of any kind are reported as None.
        """
        try:
            output = await self._runner(environment).arg("container", "inspect", name).exec()
        except EngineExecutionError as e:
            # "No such container" lands here too
            logger.debug(f"Inspect of '{name}' failed, treating as absent: {e.stderr}")
            return None

        try:
            containers = json.loads(output or "[]")
            if not containers:
                return None
            return ContainerState.from_inspect(containers[0])
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not parse inspect output for '{name}': {e!r}")
            return None

    async def container_exists(self, environment: EnvironmentDefinition, name: str) -> bool:
        """Check whether a container with the given name or ID exists."""
        return await self.get_container(environment, name) is not None

    async def ensure_reverse_proxy(self, environment: EnvironmentDefinition) -> ContainerState:
        """
        Start the traefik reverse proxy unless it already exists.

        Returns:
            State of the proxy container

        Raises:
            EngineExecutionError: If docker run fails
        """
        container = await self.get_container(environment, TRAEFIK_PROXY_NAME)
        if container is not None:
            logger.debug(f"Reverse proxy already exists ({container.id[:12]})")
            return container

        runner = (
            self._runner(environment)
            .arg("run")
            .arg("-d")
            .arg("--restart", "always")
            .arg("-p", "8080:8080")
            .arg("-p", "80:80")
            .arg("-v", "/var/run/docker.sock:/var/run/docker.sock")
            .arg("--name", TRAEFIK_PROXY_NAME)
            .arg(TRAEFIK_IMAGE)
            .arg("--api", "--docker")
        )
        runner.output_command()
        container_id = await runner.exec()

        logger.info(f"Started reverse proxy {TRAEFIK_PROXY_NAME} ({container_id[:12]})")
        return await self._inspect_started(environment, container_id, TRAEFIK_PROXY_NAME)

    async def create(
        self, environment: EnvironmentDefinition, container_name: str
    ) -> list[ContainerState]:
        """
        Create every container resolved for a definition name.

        Definitions are processed one at a time in resolved order (primary
        definitions, then derived sidecars). Containers that already exist
        are left as they are and their current state is returned.

        Args:
            environment: Target environment
            container_name: Definition document name

        Returns:
            One state per resolved definition, in resolved order

        Raises:
            DefinitionNotFound: If the definition document does not exist
            DefinitionParseError: If the definition document is malformed
            EngineExecutionError: If a docker run or volume command fails.
                                  Containers created before the failure are kept.
        """
        definitions = await self.definition_store.resolve(container_name)

        results: list[ContainerState] = []
        for definition in definitions:
            results.append(await self._create_single(environment, definition))
        return results

    async def _create_single(
        self, environment: EnvironmentDefinition, definition: ContainerDefinition
    ) -> ContainerState:
        if definition.name == TRAEFIK_PROXY_NAME and definition.image is None:
            return await self.ensure_reverse_proxy(environment)

        existing = await self.get_container(environment, definition.name)
        if existing is not None:
            logger.info(
                f"Container {definition.name} already exists ({existing.status}), skipping"
            )
            return existing

        if not definition.image:
            raise BootstrapError(f"Container definition '{definition.name}' has no image")

        runner = await self.build_run_command(environment, definition)
        runner.output_command()
        container_id = await runner.exec()

        logger.info(f"Created container {definition.name} ({container_id[:12]})")
        return await self._inspect_started(environment, container_id, definition.name)

    async def build_run_command(
        self, environment: EnvironmentDefinition, definition: ContainerDefinition
    ) -> DockerRunner:
        """
        Assemble the docker run command for a definition.

        Volume types are resolved to concrete volumes (creating them when
        needed) while the command is assembled, so this issues docker
        volume commands but never starts a container.
        """
        runner = (
            self._runner(environment)
            .arg("run")
            .arg("-d")
            .arg("--restart", "always")
            .arg("--name", definition.name)
        )

        self._add_labels(runner, environment, definition)
        await self._add_volumes(runner, environment, definition)
        self._add_ports(runner, definition)
        self._add_environment_variables(runner, definition)

        # Image must come last
        runner.arg(definition.image)
        return runner

    def _add_labels(
        self,
        runner: DockerRunner,
        environment: EnvironmentDefinition,
        definition: ContainerDefinition,
    ) -> None:
        if not definition.host_route:
            return

        rule = f"Host: {environment.resolve_host(definition.host_route)}"
        if definition.path_route:
            rule = f"{rule}; PathPrefixStrip: {definition.path_route}"

        runner.arg("--label", f"{TRAEFIK_RULE_LABEL}={rule}")

    async def _add_volumes(
        self,
        runner: DockerRunner,
        environment: EnvironmentDefinition,
        definition: ContainerDefinition,
    ) -> None:
        volume_manager = self._volume_manager(environment)
        for binding in definition.volumes:
            volume = await volume_manager.get_or_create(binding.type)
            runner.arg("--volume", f"{volume.name}:{binding.mount_point}")

    def _add_ports(self, runner: DockerRunner, definition: ContainerDefinition) -> None:
        for port in definition.ports:
            runner.arg("--publish", f"{port.host_port}:{port.container_port}")

    def _add_environment_variables(
        self, runner: DockerRunner, definition: ContainerDefinition
    ) -> None:
        for key, value in definition.env.items():
            runner.arg("--env", f"{key.upper()}={value}")

    async def _inspect_started(
        self, environment: EnvironmentDefinition, container_id: str, name: str
    ) -> ContainerState:
        """Inspect a container just started by docker run, by the ID it printed."""
        container = await self.get_container(environment, container_id)
        if container is None:
            # run printed something other than an ID, e.g. pull progress
            container = await self.get_container(environment, name)
        if container is None:
            raise BootstrapError(f"Container {name} was started but cannot be inspected")
        return container

    async def delete(self, environment: EnvironmentDefinition, target: DeleteTarget) -> None:
        """
        Remove the containers for a definition name or definitions.

        Containers that do not exist are skipped, so deleting twice is safe.

        Args:
            environment: Target environment
            target: Definition document name, a single definition, or a list

        Raises:
            DefinitionNotFound: If target is a name with no definition document
            DefinitionParseError: If the definition document is malformed
            EngineExecutionError: If docker rm fails. Containers removed before
                                  the failure stay removed.
        """
        if not target:
            return

        if isinstance(target, str):
            definitions = await self.definition_store.resolve(target)
        elif isinstance(target, ContainerDefinition):
            definitions = [target]
        else:
            definitions = list(target)

        for definition in definitions:
            await self._delete_single(environment, definition)

    async def _delete_single(
        self, environment: EnvironmentDefinition, definition: ContainerDefinition
    ) -> None:
        container = await self.get_container(environment, definition.name)
        if container is None:
            logger.debug(f"Container {definition.name} does not exist, nothing to remove")
            return

        runner = self._runner(environment).arg("rm", "--force", container.id)
        runner.output_command()
        await runner.exec()

        logger.info(f"Removed container {definition.name} ({container.id[:12]})")

    async def list_status(
        self, environment: EnvironmentDefinition
    ) -> dict[str, list[tuple[ContainerDefinition, ContainerState | None]]]:
        """
        Inspect every container for every ``.json`` definition document.

        Documents that cannot be resolved are logged and left out.

        Returns:
            Mapping of definition document name to (definition, state) pairs,
            where state is None for containers that do not exist

        Raises:
            DefinitionNotFound: If the definitions directory does not exist
        """
        status: dict[str, list[tuple[ContainerDefinition, ContainerState | None]]] = {}
        for name in await self.definition_store.list_documents():
            try:
                definitions = await self.definition_store.resolve(name)
            except (DefinitionNotFound, DefinitionParseError) as e:
                logger.warning(f"Skipping definition '{name}': {e}")
                continue
            status[name] = [
                (definition, await self.get_container(environment, definition.name))
                for definition in definitions
            ]
        return status
