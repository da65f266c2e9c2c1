"""phaserflow configuration.

Settings can come from a YAML file (``phaserflow.yaml``) next to the project:

    watch_dir: editor
    output_dir: public/editor
    conversion_dir: editor/scenes
    exclude:
      - .DS_Store
      - .tmp

Relative paths are resolved against the directory containing the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import ryml

from phaserflow.descriptor import DEFAULT_MAX_DEPTH, DESCRIPTOR_EXTENSION
from phaserflow.errors import ConfigError
from phaserflow.rewriter import DEFAULT_CONTEXT_NAME, DEFAULT_SCENE_TYPE

CONFIG_FILE_NAME = "phaserflow.yaml"

_PATH_KEYS = ("watch_dir", "output_dir", "conversion_dir")
_STRING_KEYS = ("context_name", "scene_type", "descriptor_extension")
_KNOWN_KEYS = frozenset(_PATH_KEYS + _STRING_KEYS + ("exclude", "max_descriptor_depth"))


@dataclass(frozen=True)
class TransformOptions:
    """Settings for the script transformation.

    Attributes:
        conversion_dir: Only scripts under this directory are rewritten
            (nothing is rewritten when None)
        context_name: Name of the injected scene parameter
        scene_type: Declared type of the scene parameter in TypeScript
        descriptor_extension: Extension of the sibling scene descriptor
        max_descriptor_depth: Maximum display list nesting in a descriptor
    """

    conversion_dir: Path | None = None
    context_name: str = DEFAULT_CONTEXT_NAME
    scene_type: str = DEFAULT_SCENE_TYPE
    descriptor_extension: str = DESCRIPTOR_EXTENSION
    max_descriptor_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class SyncConfig:
    """Settings for synchronizing an editor tree into a build tree."""

    watch_dir: Path
    output_dir: Path
    conversion_dir: Path | None = None
    exclude_patterns: list[str] = field(default_factory=list)
    context_name: str = DEFAULT_CONTEXT_NAME
    scene_type: str = DEFAULT_SCENE_TYPE
    descriptor_extension: str = DESCRIPTOR_EXTENSION
    max_descriptor_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self):
        self.watch_dir = Path(self.watch_dir)
        self.output_dir = Path(self.output_dir)
        if self.conversion_dir is not None:
            self.conversion_dir = Path(self.conversion_dir)

    def transform_options(self) -> TransformOptions:
        """Get the transformation settings for this sync."""
        return TransformOptions(
            conversion_dir=self.conversion_dir,
            context_name=self.context_name,
            scene_type=self.scene_type,
            descriptor_extension=self.descriptor_extension,
            max_descriptor_depth=self.max_descriptor_depth,
        )


def load_config(path: str | Path) -> SyncConfig:
    """Load a SyncConfig from a YAML file.

    Args:
        path: Path to the configuration file

    Returns:
        Parsed SyncConfig

    Raises:
        ConfigError: The file is not a valid configuration
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    data = parse_config(content, source=str(path))
    base_dir = path.parent

    for key in _PATH_KEYS:
        if key in data and not Path(data[key]).is_absolute():
            data[key] = base_dir / data[key]

    return SyncConfig(**data)


def parse_config(content: str, source: str = "<config>") -> dict[str, Any]:
    """Parse and validate configuration YAML into SyncConfig keyword arguments."""
    try:
        tree = ryml.parse_in_arena(content.encode("utf-8"))
        data = _to_python(tree, tree.root_id())
    except Exception as e:
        raise ConfigError(f"{source}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{source}: configuration must be a mapping")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"{source}: unknown keys: {', '.join(unknown)}")

    missing = [key for key in ("watch_dir", "output_dir") if not data.get(key)]
    if missing:
        raise ConfigError(f"{source}: missing required keys: {', '.join(missing)}")

    result: dict[str, Any] = {}
    for key in _PATH_KEYS + _STRING_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ConfigError(f"{source}: '{key}' must be a string")
        result[key] = value

    exclude = data.get("exclude")
    if exclude is not None:
        if isinstance(exclude, str):
            exclude = [exclude]
        if not isinstance(exclude, list) or not all(isinstance(p, str) for p in exclude):
            raise ConfigError(f"{source}: 'exclude' must be a list of strings")
        result["exclude_patterns"] = exclude

    depth = data.get("max_descriptor_depth")
    if depth is not None:
        try:
            result["max_descriptor_depth"] = int(depth)
        except (TypeError, ValueError):
            raise ConfigError(f"{source}: 'max_descriptor_depth' must be an integer") from None

    return result


def _iter_children(tree: Any, node_id: int) -> list[int]:
    """Iterate over children of a node."""
    if not tree.has_children(node_id):
        return []
    children = []
    child = tree.first_child(node_id)
    while child != ryml.NONE:
        children.append(child)
        child = tree.next_sibling(child)
    return children


def _to_python(tree: Any, node_id: int) -> Any:
    """Convert a rapidyaml tree node to Python containers of strings.

    Scalars stay strings; callers convert the few numeric settings.
    """
    if tree.is_map(node_id):
        result = {}
        for child in _iter_children(tree, node_id):
            key = bytes(tree.key(child)).decode("utf-8") if tree.has_key(child) else ""
            result[key] = _to_python(tree, child)
        return result
    elif tree.is_seq(node_id):
        return [_to_python(tree, child) for child in _iter_children(tree, node_id)]
    elif tree.has_val(node_id):
        val_mv = tree.val(node_id)
        if val_mv is None:
            return None
        val = bytes(val_mv).decode("utf-8")
        if val in ("null", "~", ""):
            return None
        return val
    return None
