"""
Environment documents.

An environment names a target host, how to reach its docker daemon, and
the URL alias table used when building routing labels. Environments are
supplied by the operator as ``<environments dir>/<name>.json``.
"""

import json
import os
from pathlib import Path

from cb_common.errors import DefinitionParseError, EnvironmentNotFound
from cb_common.models import EnvironmentDefinition


def load_environment(environments_dir: str | Path, name: str) -> EnvironmentDefinition:
    """
    Load one environment document.

    Raises:
        EnvironmentNotFound: If no document exists for the name
        DefinitionParseError: If the document is malformed
    """
    path = Path(environments_dir) / f"{name}.json"
    try:
        contents = path.read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError) as e:
        raise EnvironmentNotFound(f"No environment '{name}' at {path}") from e
    except UnicodeDecodeError as e:
        raise DefinitionParseError(f"{path} is not valid UTF-8: {e}") from e

    try:
        data = json.loads(contents)
    except json.JSONDecodeError as e:
        raise DefinitionParseError(f"Invalid JSON in {path}: {e}") from e

    return EnvironmentDefinition.from_dict(data)


def list_environments(environments_dir: str | Path) -> list[str]:
    """
    List environment names available in a directory.

    Raises:
        EnvironmentNotFound: If the directory does not exist
    """
    try:
        files = os.listdir(environments_dir)
    except FileNotFoundError as e:
        raise EnvironmentNotFound(
            f"Environments directory not found: {environments_dir}"
        ) from e
    return sorted(f.removesuffix(".json") for f in files if f.endswith(".json"))
