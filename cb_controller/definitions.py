"""
Container definition store.

Definitions live in a directory of JSON documents, one per logical
container name. A document holds either one definition object or a list
of them. Definitions with an ``sftp`` block get an SFTP sidecar definition
derived and resolved together with them.
"""

import asyncio
import json
import logging
import os
from pathlib import Path

from cb_common.errors import DefinitionNotFound, DefinitionParseError
from cb_common.models import (
    ContainerDefinition,
    PortBinding,
    VolumeBinding,
)

logger = logging.getLogger(__name__)

TRAEFIK_PROXY_NAME = "traefik_proxy"

SFTP_IMAGE = "willia4/sftp_volume:1.4.0"
SFTP_CONTAINER_PORT = 22
SFTP_ENV = {
    "SFTP_CONTAINER_GROUP": "root",
    "SFTP_CONTAINER_GROUP_ID": "0",
    "SFTP_CONTAINER_USER": "root",
    "SFTP_CONTAINER_USER_ID": "0",
}

DEFINITION_SUFFIX = ".json"


def make_sftp_definition(definition: ContainerDefinition) -> ContainerDefinition | None:
    """
    Derive the SFTP sidecar for a definition.

    Returns:
        The sidecar definition, or None if the definition has no sftp block
    """
    if definition.sftp is None:
        return None

    return ContainerDefinition(
        name=f"{definition.name}-sftp",
        image=SFTP_IMAGE,
        volumes=[
            VolumeBinding(type="ssh_key", mount_point="/volumes/ssh_keys"),
            VolumeBinding(type="ssh_user", mount_point="/volumes/user"),
            VolumeBinding(
                type=definition.sftp.volume_type,
                mount_point="/volumes/sftp_root/www",
            ),
        ],
        ports=[
            PortBinding(
                container_port=SFTP_CONTAINER_PORT,
                host_port=definition.sftp.host_port,
            )
        ],
        env=dict(SFTP_ENV),
    )


def parse_definitions(contents: str, source: str = "<string>") -> list[ContainerDefinition]:
    """
    Parse a definition document and append derived sidecars.

    Args:
        contents: JSON text of the document
        source: Document name used in error messages

    Returns:
        Primary definitions in document order, followed by their sidecars

    Raises:
        DefinitionParseError: If the document is malformed
    """
    try:
        data = json.loads(contents)
    except json.JSONDecodeError as e:
        raise DefinitionParseError(f"Invalid JSON in {source}: {e}") from e

    if not isinstance(data, list):
        data = [data]

    definitions = [ContainerDefinition.from_dict(d) for d in data]
    sidecars = [s for s in map(make_sftp_definition, definitions) if s is not None]
    return definitions + sidecars


class DefinitionStore:
    """Resolves container names to definitions from a definitions directory."""

    def __init__(self, definitions_dir: str | Path):
        self.definitions_dir = Path(definitions_dir)

    def _definition_path(self, name: str) -> Path:
        return self.definitions_dir / f"{name}{DEFINITION_SUFFIX}"

    async def resolve(self, name: str) -> list[ContainerDefinition]:
        """
        Resolve a container name to its definitions, sidecars included.

        Args:
            name: Definition document name, or the reverse proxy name

        Returns:
            Definitions in creation order

        Raises:
            DefinitionNotFound: If no document exists for the name
            DefinitionParseError: If the document is malformed
        """
        if name == TRAEFIK_PROXY_NAME:
            return [ContainerDefinition(name=TRAEFIK_PROXY_NAME, image=None)]

        path = self._definition_path(name)
        try:
            contents = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise DefinitionNotFound(f"No container definition '{name}' at {path}") from e
        except UnicodeDecodeError as e:
            raise DefinitionParseError(f"{path} is not valid UTF-8: {e}") from e

        definitions = parse_definitions(contents, source=str(path))
        logger.debug(
            f"Resolved '{name}' to {len(definitions)} definition(s): "
            f"{[d.name for d in definitions]}"
        )
        return definitions

    async def _list_files(self) -> list[str]:
        try:
            return await asyncio.to_thread(os.listdir, self.definitions_dir)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise DefinitionNotFound(
                f"Definitions directory not found: {self.definitions_dir}"
            ) from e

    async def list_available(self) -> list[str]:
        """
        List the names of all entries in the definitions directory.

        Every entry is listed with a trailing ``.json`` stripped, so stray
        files show up under their own name.

        Raises:
            DefinitionNotFound: If the definitions directory does not exist
        """
        return [f.removesuffix(DEFINITION_SUFFIX) for f in await self._list_files()]

    async def list_documents(self) -> list[str]:
        """
        List the names of ``.json`` definition documents only.

        Raises:
            DefinitionNotFound: If the definitions directory does not exist
        """
        return [
            f.removesuffix(DEFINITION_SUFFIX)
            for f in await self._list_files()
            if f.endswith(DEFINITION_SUFFIX)
            and (self.definitions_dir / f).is_file()
        ]

