"""
Error taxonomy for container bootstrap operations.

Definition errors abort an operation before any engine command runs.
Engine errors raised while inspecting are converted to "absent" by the
container manager; everywhere else they propagate to the caller.
"""


class BootstrapError(Exception):
    """Base class for all errors raised by this package."""


class DefinitionNotFound(BootstrapError):
    """A definition document or the definitions directory does not exist."""


class DefinitionParseError(BootstrapError):
    """A definition or environment document could not be parsed."""


class EnvironmentNotFound(BootstrapError):
    """An environment document does not exist."""


class EngineExecutionError(BootstrapError, RuntimeError):
    """
    The docker CLI exited with a nonzero status.

    Attributes:
        command: Full argument list that was executed
        returncode: Process exit status
        stderr: Captured standard error, stripped
    """

    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"'{' '.join(command)}' exited with status {returncode}: {stderr}"
        )
