"""
Container Bootstrap controller module.

This module contains the definition store, volume manager, docker command
runner and container manager. Together they reconcile desired state
(definition documents) with actual state (containers on the target host).
"""

from .container_manager import ContainerManager
from .definitions import TRAEFIK_PROXY_NAME, DefinitionStore, make_sftp_definition
from .environment import list_environments, load_environment
from .runner import DockerRunner
from .volume_manager import VolumeManager

__all__ = [
    "ContainerManager",
    "DefinitionStore",
    "DockerRunner",
    "TRAEFIK_PROXY_NAME",
    "VolumeManager",
    "list_environments",
    "load_environment",
    "make_sftp_definition",
]
