"""
App bundle discovery - reads the module definitions that make up a Make.com app.

Layout:
    app/
      base.imljson
      common.imljson
      connections/*.imljson
      modules/*.imljson
      rpcs/*.imljson
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .constants import (
    BASE_FILE,
    COMMON_FILE,
    CONNECTIONS_DIR,
    DEFINITION_SUFFIX,
    MODULES_DIR,
    RPCS_DIR,
)


class BundleError(ValueError):
    """Raised when a definition file cannot be read or parsed."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


def remote_name(path: Path) -> str:
    """
    Convert a definition filename to a valid Make.com name (alphanumeric + underscore).

    Examples:
        start-rank-task.imljson -> start_rank_task
        startRankTask.imljson   -> startRankTask
    """
    return path.name.removesuffix(DEFINITION_SUFFIX).replace("-", "_")


def strip_comments(text: str) -> str:
    """Remove // and /* */ comments that sit outside JSON strings."""
    out = []
    i = 0
    in_string = False
    length = len(text)

    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if char == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
        elif char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(char)
            i += 1

    return "".join(out)


def read_definition(path: Path) -> Any:
    """Read a JSON (or JSON-with-comments) definition file."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise BundleError(path, f"cannot read file ({e.strerror or e})") from e

    try:
        return json.loads(strip_comments(content))
    except json.JSONDecodeError as e:
        raise BundleError(path, f"JSON parse error: {e}") from e


def read_component(path: Path) -> dict[str, Any]:
    """Read a connection, module or RPC definition, which must be a JSON object."""
    definition = read_definition(path)
    if not isinstance(definition, dict):
        raise BundleError(path, "definition must be a JSON object")
    return definition


@dataclass
class ComponentFile:
    """A single definition file inside a component directory."""

    name: str
    path: Path
    definition: dict[str, Any]

    @property
    def stem(self) -> str:
        return self.path.name.removesuffix(DEFINITION_SUFFIX)

    @property
    def label(self) -> str:
        return self.definition.get("label") or self.name


@dataclass
class AppBundle:
    """All definitions of a Make.com custom app."""

    root: Path
    base: dict[str, Any] | None = None
    common: dict[str, Any] | None = None
    connections: list[ComponentFile] = field(default_factory=list)
    modules: list[ComponentFile] = field(default_factory=list)
    rpcs: list[ComponentFile] = field(default_factory=list)

    @property
    def total_components(self) -> int:
        fixed = int(self.base is not None) + int(self.common is not None)
        return fixed + len(self.connections) + len(self.modules) + len(self.rpcs)


def list_definition_files(directory: Path) -> list[Path]:
    """List *.imljson files in a directory, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(f for f in directory.iterdir() if f.is_file() and f.name.endswith(DEFINITION_SUFFIX))


def _load_components(directory: Path) -> list[ComponentFile]:
    components = []
    for path in list_definition_files(directory):
        components.append(ComponentFile(name=remote_name(path), path=path, definition=read_component(path)))
    return components


def load_bundle(app_dir: Path) -> AppBundle:
    """
    Load an app bundle from a directory.

    Every component is optional; a missing directory yields no components.

    Args:
        app_dir: Root directory of the app

    Returns:
        AppBundle with parsed definitions

    Raises:
        BundleError: If the directory is missing or a definition is invalid
    """
    if not app_dir.is_dir():
        raise BundleError(app_dir, "app directory not found")

    bundle = AppBundle(root=app_dir)

    base_path = app_dir / BASE_FILE
    if base_path.exists():
        bundle.base = read_definition(base_path)

    common_path = app_dir / COMMON_FILE
    if common_path.exists():
        bundle.common = read_definition(common_path)

    bundle.connections = _load_components(app_dir / CONNECTIONS_DIR)
    bundle.modules = _load_components(app_dir / MODULES_DIR)
    bundle.rpcs = _load_components(app_dir / RPCS_DIR)

    return bundle
