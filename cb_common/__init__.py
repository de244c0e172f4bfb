"""
Container Bootstrap common module.

This module contains the domain models and error taxonomy shared by the
controller and the admin CLI.

The common module has no dependencies on other cb_* modules, making it
a pure domain layer that can be imported by any component.
"""

from .errors import (
    BootstrapError,
    DefinitionNotFound,
    DefinitionParseError,
    EngineExecutionError,
    EnvironmentNotFound,
)
from .models import (
    ContainerDefinition,
    ContainerState,
    EnvironmentDefinition,
    PortBinding,
    SftpSettings,
    Volume,
    VolumeBinding,
)

__all__ = [
    "BootstrapError",
    "ContainerDefinition",
    "ContainerState",
    "DefinitionNotFound",
    "DefinitionParseError",
    "EngineExecutionError",
    "EnvironmentDefinition",
    "EnvironmentNotFound",
    "PortBinding",
    "SftpSettings",
    "Volume",
    "VolumeBinding",
]
