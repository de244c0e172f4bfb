"""
Command builder for docker CLI invocations.

A DockerRunner collects arguments for a single docker invocation and runs
it against one target environment. Arguments are passed to the process
verbatim (no shell), so values containing spaces need no quoting.
"""

import asyncio
import logging
import os
import shlex

from cb_common.errors import EngineExecutionError
from cb_common.models import EnvironmentDefinition

logger = logging.getLogger(__name__)


class DockerRunner:
    """
    Builds and executes one docker command.

    Usage:
        output = await (
            DockerRunner(environment)
            .arg("container", "inspect")
            .arg(name)
            .exec()
        )
    """

    def __init__(
        self,
        environment: EnvironmentDefinition,
        docker_binary: str = "docker",
        echo_command: bool = False,
    ):
        """
        Initialize the runner.

        Args:
            environment: Target environment (docker host and TLS settings)
            docker_binary: Path or name of the docker executable
            echo_command: If True, output_command() logs the command line
        """
        self.environment = environment
        self.docker_binary = docker_binary
        self.echo_command = echo_command
        self.args: list[str] = []

    def arg(self, *tokens: str) -> "DockerRunner":
        """Append tokens verbatim to the argument list."""
        self.args.extend(str(t) for t in tokens)
        return self

    @property
    def command(self) -> list[str]:
        return [self.docker_binary, *self.args]

    @property
    def command_line(self) -> str:
        """Shell-quoted rendering of the command, for display only."""
        return shlex.join(self.command)

    def output_command(self) -> None:
        """Log the assembled command line if echoing is enabled."""
        if self.echo_command:
            logger.info(f"[{self.environment.environment_name}] {self.command_line}")

    def _process_env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.environment.docker_host:
            env["DOCKER_HOST"] = self.environment.docker_host
        if self.environment.tls_verify:
            env["DOCKER_TLS_VERIFY"] = "1"
        if self.environment.cert_path:
            env["DOCKER_CERT_PATH"] = self.environment.cert_path
        return env

    async def exec(self) -> str:
        """
        Run the command and wait for it to exit.

        Returns:
            Captured standard output, stripped

        Raises:
            EngineExecutionError: If docker cannot be started or exits with a
                                  nonzero status
        """
        logger.debug(f"Executing: {self.command_line}")
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._process_env(),
            )
        except OSError as e:
            # missing binary, permission denied
            raise EngineExecutionError(self.command, -1, str(e)) from e

        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            raise EngineExecutionError(
                self.command, process.returncode, stderr.decode().strip()
            )

        return stdout.decode().strip()
