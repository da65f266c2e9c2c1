"""Scene function rewriter.

Turns the free functions of an editor script into exported functions that
receive the scene explicitly:

    function create() {              export function create(scene: Phaser.Scene | any) {
        this.add.image(0, 0, "bg");      scene.add.image(0, 0, "bg");
        const hero = new Hero(this);     const hero = new Hero(scene);
        this.hero = hero;                scene.hero = hero;
    }                                }

                                     export type SceneExtensions = {
                                       hero: Hero;
                                     };

Every step checks its own precondition (already exported, parameter already
present, no ``this`` left, alias regenerated in place), so rewriting the
output again yields the same text.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Iterable

from tree_sitter import Node

from phaserflow.analyzer import analyze_function
from phaserflow.descriptor import PublicMember
from phaserflow.errors import UnsupportedSyntaxError
from phaserflow.syntax import (
    FunctionSite,
    ParsedScript,
    find_function_sites,
    iter_nodes,
    parse_script,
)

SCENE_EXTENSIONS = "SceneExtensions"
DEFAULT_CONTEXT_NAME = "scene"
DEFAULT_SCENE_TYPE = "Phaser.Scene"

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

# Nodes whose `this` is not the scene
_CONTEXT_BOUNDARIES = frozenset({"class_body"})

_PARAMETER_WRAPPERS = frozenset({"required_parameter", "optional_parameter"})

_WHITESPACE = (b" ", b"\t", b"\r", b"\n")


@dataclass(frozen=True)
class Edit:
    """Replace source bytes [start, end) with replacement."""

    start: int
    end: int
    replacement: bytes


@dataclass(frozen=True)
class SceneField:
    """A property of the synthesized SceneExtensions type."""

    name: str
    type_name: str

    def render(self) -> str:
        key = self.name if _IDENTIFIER_PATTERN.fullmatch(self.name) else json.dumps(self.name)
        return f"{key}: {self.type_name};"


@dataclass
class RewriteOutcome:
    """Rewritten source plus what went into it."""

    text: str
    fields: list[SceneField] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ScriptRewriter:
    """Rewrites top-level functions of a parsed script to take the scene."""

    def __init__(
        self,
        context_name: str = DEFAULT_CONTEXT_NAME,
        scene_type: str = DEFAULT_SCENE_TYPE,
    ):
        """Initialize the rewriter.

        Args:
            context_name: Name of the injected scene parameter
            scene_type: Declared type of the parameter in TypeScript output
        """
        self.context_name = context_name
        self.scene_type = scene_type

    def rewrite(
        self, parsed: ParsedScript, members: Iterable[PublicMember] = ()
    ) -> RewriteOutcome:
        """Rewrite a parsed script.

        Args:
            parsed: The script to rewrite
            members: Public members from the scene descriptor, in document order

        Returns:
            RewriteOutcome with the new source text

        Raises:
            UnsupportedSyntaxError: A parameter pattern already binds the
                scene name, or the rewritten text failed to parse
        """
        edits: set[Edit] = set()
        published: dict[str, list[str]] = {}

        for site in find_function_sites(parsed):
            if not site.exported:
                edits.add(Edit(site.node.start_byte, site.node.start_byte, b"export "))
            edits.update(self._parameter_edits(parsed, site))
            edits.update(self._context_edits(parsed, site))

            if parsed.dialect.typed and site.body is not None:
                analysis = analyze_function(parsed, site.body, self.context_name)
                for name, types in analysis.published_fields():
                    known = published.setdefault(name, [])
                    known.extend(t for t in types if t not in known)

        outcome = RewriteOutcome(text="")
        if parsed.dialect.typed:
            outcome.fields = self._build_fields(published, members, outcome.warnings)
            edits.update(_alias_removal_edits(parsed))

        text = apply_edits(parsed.source, edits).decode("utf-8")
        if outcome.fields:
            text = text.rstrip() + "\n\n" + render_scene_extensions(outcome.fields) + "\n"

        try:
            parse_script(text, parsed.dialect)
        except UnsupportedSyntaxError as e:
            raise UnsupportedSyntaxError(
                f"rewrite produced invalid {parsed.dialect.name}",
                path=parsed.path,
                line=e.line,
                column=e.column,
            ) from e

        outcome.text = text
        return outcome

    def _parameter_declaration(self, parsed: ParsedScript) -> bytes:
        if parsed.dialect.typed:
            return f"{self.context_name}: {self.scene_type} | any".encode("utf-8")
        return self.context_name.encode("utf-8")

    def _parameter_edits(self, parsed: ParsedScript, site: FunctionSite) -> list[Edit]:
        """Prepend the scene parameter unless the function already has one."""
        parameters = site.parameters
        if parameters is None:
            return []

        existing = [p for p in parameters.named_children if p.type != "comment"]
        if any(self._is_context_parameter(parsed, p) for p in existing):
            return []
        for parameter in existing:
            if self.context_name in _bound_names(parsed, parameter):
                row, column = parameter.start_point
                raise UnsupportedSyntaxError(
                    f"parameter pattern already binds '{self.context_name}'",
                    path=parsed.path,
                    line=row + 1,
                    column=column + 1,
                )

        declaration = self._parameter_declaration(parsed)
        if existing and _is_this_parameter(existing[0]):
            # TypeScript requires a `this` parameter to stay first
            position = existing[0].end_byte
            return [Edit(position, position, b", " + declaration)]

        position = parameters.start_byte + 1
        if existing:
            declaration += b", "
        return [Edit(position, position, declaration)]

    def _is_context_parameter(self, parsed: ParsedScript, parameter: Node) -> bool:
        if parameter.type in _PARAMETER_WRAPPERS:
            parameter = parameter.child_by_field_name("pattern")
        elif parameter.type == "assignment_pattern":
            parameter = parameter.child_by_field_name("left")
        return (
            parameter is not None
            and parameter.type == "identifier"
            and parsed.text(parameter) == self.context_name
        )

    def _context_edits(self, parsed: ParsedScript, site: FunctionSite) -> list[Edit]:
        """Rebind `this` receivers and first constructor arguments to the scene."""
        replacement = self.context_name.encode("utf-8")
        edits: list[Edit] = []

        for node in iter_nodes(site.node, skip=_CONTEXT_BOUNDARIES):
            if node.type in ("member_expression", "subscript_expression"):
                target = node.child_by_field_name("object")
            elif node.type == "new_expression":
                target = _first_argument(node)
            else:
                continue
            if target is not None and target.type == "this":
                edits.append(Edit(target.start_byte, target.end_byte, replacement))

        return edits

    def _build_fields(
        self,
        published: dict[str, list[str]],
        members: Iterable[PublicMember],
        warnings: list[str],
    ) -> list[SceneField]:
        """Merge published instances and descriptor members into fields.

        Published instances come first in publication order, then descriptor
        members in document order. The first field with a given name wins.
        """
        fields: list[SceneField] = []
        seen: set[str] = set()

        for name, types in published.items():
            if len(types) > 1:
                warnings.append(
                    f"'{name}' is published with different types ({', '.join(types)}); "
                    "declaring their union"
                )
            fields.append(SceneField(name=name, type_name=" | ".join(types)))
            seen.add(name)

        for member in members:
            if member.label in seen:
                warnings.append(
                    f"'{member.label}' is declared more than once; keeping the first declaration"
                )
                continue
            fields.append(SceneField(name=member.label, type_name=member.type_name))
            seen.add(member.label)

        return fields


def render_scene_extensions(fields: Iterable[SceneField]) -> str:
    """Render the exported SceneExtensions type alias."""
    lines = [f"export type {SCENE_EXTENSIONS} = {{"]
    lines.extend(f"  {f.render()}" for f in fields)
    lines.append("};")
    return "\n".join(lines)


def apply_edits(source: bytes, edits: Iterable[Edit]) -> bytes:
    """Apply non-overlapping edits to source."""
    result = bytearray(source)
    for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
        result[edit.start : edit.end] = edit.replacement
    return bytes(result)


def _alias_removal_edits(parsed: ParsedScript) -> list[Edit]:
    """Remove previously generated SceneExtensions aliases with their leading whitespace."""
    edits: list[Edit] = []
    for statement in parsed.root.named_children:
        declaration = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
        if declaration is None or declaration.type != "type_alias_declaration":
            continue
        name = declaration.child_by_field_name("name")
        if name is None or parsed.text(name) != SCENE_EXTENSIONS:
            continue

        start, end = statement.start_byte, statement.end_byte
        while start > 0 and parsed.source[start - 1 : start] in _WHITESPACE:
            start -= 1
        if start == 0:
            while end < len(parsed.source) and parsed.source[end : end + 1] in _WHITESPACE:
                end += 1
        edits.append(Edit(start, end, b""))
    return edits


def _first_argument(new_expression: Node) -> Node | None:
    arguments = new_expression.child_by_field_name("arguments")
    if arguments is None:
        return None
    for argument in arguments.named_children:
        if argument.type != "comment":
            return argument
    return None


def _is_this_parameter(parameter: Node) -> bool:
    if parameter.type not in _PARAMETER_WRAPPERS:
        return False
    pattern = parameter.child_by_field_name("pattern")
    return pattern is not None and pattern.type == "this"


def _bound_names(parsed: ParsedScript, parameter: Node) -> set[str]:
    """Get every name a parameter binds, including names inside destructuring."""
    names: set[str] = set()
    stack: list[Node | None] = [parameter]
    while stack:
        node = stack.pop()
        if node is None:
            continue
        if node.type in ("identifier", "shorthand_property_identifier_pattern"):
            names.add(parsed.text(node))
        elif node.type in _PARAMETER_WRAPPERS:
            stack.append(node.child_by_field_name("pattern"))
        elif node.type in ("assignment_pattern", "object_assignment_pattern"):
            stack.append(node.child_by_field_name("left"))
        elif node.type == "pair_pattern":
            stack.append(node.child_by_field_name("value"))
        elif node.type in ("object_pattern", "array_pattern", "rest_pattern"):
            stack.extend(node.named_children)
    return names
