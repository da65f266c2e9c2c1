"""Phaser Editor scene descriptor reader.

A scene descriptor (``Level.scene``) sits next to the script it belongs to
(``Level.ts``) and describes the display hierarchy built in the editor:

    {
        "displayList": [
            {"label": "bg", "type": "Image", "scope": "PUBLIC"},
            {"label": "ui", "type": "Container", "scope": "LOCAL", "list": [...]}
        ]
    }

Only items with ``PUBLIC`` scope are exposed on the scene at runtime, so only
those become members of the synthesized ``SceneExtensions`` type.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from phaserflow.errors import DescriptorTooDeepError, MalformedDescriptorError
from phaserflow.type_mapper import map_kind

DESCRIPTOR_EXTENSION = ".scene"
SCRIPT_EXTENSIONS = (".js", ".ts")
PUBLIC_SCOPE = "PUBLIC"
DEFAULT_MAX_DEPTH = 1000


@dataclass
class DisplayItem:
    """A node of the editor display list."""

    label: str
    kind: str = ""
    scope: str = ""
    children: list[DisplayItem] = field(default_factory=list)

    @property
    def is_public(self) -> bool:
        return self.scope == PUBLIC_SCOPE


@dataclass(frozen=True)
class PublicMember:
    """A publicly scoped descriptor item and the type it is exposed as."""

    label: str
    type_name: str


@dataclass
class DescriptorDocument:
    """Parsed scene descriptor."""

    items: list[DisplayItem] = field(default_factory=list)
    source_path: Path | None = None

    @classmethod
    def parse(
        cls,
        content: str,
        path: Path | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> DescriptorDocument:
        """Parse descriptor JSON.

        Raises:
            MalformedDescriptorError: Content is not a descriptor document
            DescriptorTooDeepError: Display list nesting exceeds max_depth
        """
        try:
            data = json.loads(content)
        except RecursionError:
            raise DescriptorTooDeepError(max_depth, path=path) from None
        except ValueError as e:
            raise MalformedDescriptorError(f"invalid JSON: {e}", path=path) from e

        if not isinstance(data, dict):
            raise MalformedDescriptorError("descriptor root must be an object", path=path)

        display_list = data.get("displayList")
        if display_list is None:
            return cls(source_path=path)

        return cls(items=_build_items(display_list, path, max_depth), source_path=path)

    @classmethod
    def load(cls, path: str | Path, max_depth: int = DEFAULT_MAX_DEPTH) -> DescriptorDocument:
        """Load a descriptor file from disk."""
        path = Path(path)
        content = path.read_text(encoding="utf-8-sig")
        return cls.parse(content, path=path, max_depth=max_depth)

    def iter_items(self) -> Iterator[DisplayItem]:
        """Iterate over all display items in document (pre-)order."""
        stack = list(reversed(self.items))
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.children))

    def public_members(self) -> list[PublicMember]:
        """Get publicly scoped items with a declared kind, in document order."""
        return [
            PublicMember(label=item.label, type_name=map_kind(item.kind))
            for item in self.iter_items()
            if item.is_public and item.kind
        ]


def _build_items(display_list: Any, path: Path | None, max_depth: int) -> list[DisplayItem]:
    """Convert raw display list JSON into DisplayItem trees.

    Uses an explicit stack so depth is bounded by max_depth rather than the
    interpreter recursion limit.
    """
    roots: list[DisplayItem] = []
    # (raw list, destination list, depth)
    pending: list[tuple[Any, list[DisplayItem], int]] = [(display_list, roots, 1)]

    while pending:
        raw_list, destination, depth = pending.pop()
        if depth > max_depth:
            raise DescriptorTooDeepError(max_depth, path=path)
        if not isinstance(raw_list, list):
            raise MalformedDescriptorError("display list must be an array", path=path)

        for raw in raw_list:
            item = _build_item(raw, path)
            destination.append(item)
            children = raw.get("list")
            if children:
                pending.append((children, item.children, depth + 1))

    return roots


def _build_item(raw: Any, path: Path | None) -> DisplayItem:
    if not isinstance(raw, dict):
        raise MalformedDescriptorError("display list entries must be objects", path=path)

    kind = raw.get("type") or ""
    scope = raw.get("scope") or ""
    label = raw.get("label", "")
    if not isinstance(kind, str) or not isinstance(scope, str) or not isinstance(label, str):
        raise MalformedDescriptorError(
            f"item {label!r} has a non-string label, type or scope", path=path
        )

    # Unlabelled items are fine as long as nothing needs their name
    if scope == PUBLIC_SCOPE and kind and not label:
        raise MalformedDescriptorError(f"public {kind} has no label", path=path)

    return DisplayItem(label=label, kind=kind, scope=scope)


def descriptor_path_for(
    source_path: str | Path, extension: str = DESCRIPTOR_EXTENSION
) -> Path:
    """Get the descriptor path that belongs to a script path.

    Example:
        >>> descriptor_path_for("scenes/Level.ts")
        PosixPath('scenes/Level.scene')
    """
    source_path = Path(source_path)
    if source_path.suffix in SCRIPT_EXTENSIONS:
        return source_path.with_suffix(extension)
    return source_path.with_name(source_path.name + extension)


def read_public_members(
    source_path: str | Path,
    extension: str = DESCRIPTOR_EXTENSION,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[PublicMember]:
    """Read the public members declared by a script's sibling descriptor.

    Args:
        source_path: Path to the script (.js or .ts)
        extension: Descriptor file extension
        max_depth: Maximum display list nesting

    Returns:
        Public members in document order; empty if there is no descriptor

    Raises:
        MalformedDescriptorError: The descriptor exists but cannot be parsed
    """
    descriptor_path = descriptor_path_for(source_path, extension)
    if not descriptor_path.is_file():
        return []

    return DescriptorDocument.load(descriptor_path, max_depth=max_depth).public_members()
