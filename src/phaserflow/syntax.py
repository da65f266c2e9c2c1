"""Syntax tree access for editor scripts.

Wraps tree-sitter so the rest of the package deals with two explicit script
dialects (plain JavaScript and TypeScript) instead of branching on file
extensions everywhere.

The tree is a concrete syntax tree with byte offsets into the source, so
rewrites are expressed as byte-range edits and everything outside the edited
ranges (comments, formatting) is printed back unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from phaserflow.errors import UnsupportedSyntaxError

JAVASCRIPT = Language(tree_sitter_javascript.language())
TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())

# function_signature covers TypeScript overload signatures, which must be
# exported together with their implementation
FUNCTION_DECLARATION_TYPES = frozenset(
    {"function_declaration", "generator_function_declaration", "function_signature"}
)
# "function" is the node name used by older tree-sitter-javascript releases
FUNCTION_EXPRESSION_TYPES = frozenset({"function_expression", "function"})
CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})


@dataclass(frozen=True)
class ScriptDialect:
    """A source dialect and the rewrite steps it supports.

    Only the typed dialect annotates the context parameter and synthesizes
    the ``SceneExtensions`` type; everything else is shared.
    """

    name: str
    extension: str
    language: Language
    typed: bool


PLAIN = ScriptDialect(name="javascript", extension=".js", language=JAVASCRIPT, typed=False)
TYPED = ScriptDialect(name="typescript", extension=".ts", language=TYPESCRIPT, typed=True)

DIALECTS = {dialect.extension: dialect for dialect in (PLAIN, TYPED)}


def dialect_for_path(path: str | Path) -> ScriptDialect | None:
    """Get the dialect for a script path, or None if it is not a script."""
    return DIALECTS.get(Path(path).suffix)


@dataclass
class ParsedScript:
    """A parsed script and the source it was parsed from."""

    source: bytes
    tree: Tree
    dialect: ScriptDialect
    path: Path | None = None

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        """Get the source text of a node."""
        return self.source[node.start_byte : node.end_byte].decode("utf-8")


@dataclass(frozen=True)
class FunctionSite:
    """A top-level function that is a candidate for rewriting."""

    node: Node
    exported: bool

    @property
    def parameters(self) -> Node | None:
        return self.node.child_by_field_name("parameters")

    @property
    def body(self) -> Node | None:
        return self.node.child_by_field_name("body")


def parse_script(
    text: str, dialect: ScriptDialect, path: str | Path | None = None
) -> ParsedScript:
    """Parse script source.

    Raises:
        UnsupportedSyntaxError: The text is not valid in the given dialect
    """
    source = text.encode("utf-8")
    tree = Parser(dialect.language).parse(source)
    parsed = ParsedScript(
        source=source, tree=tree, dialect=dialect, path=Path(path) if path else None
    )

    error = find_syntax_error(parsed.root)
    if error is not None:
        row, column = error.start_point
        what = "missing token" if error.is_missing else "syntax error"
        raise UnsupportedSyntaxError(
            f"{what} in {dialect.name} source", path=path, line=row + 1, column=column + 1
        )
    return parsed


def find_syntax_error(node: Node) -> Node | None:
    """Find the first ERROR or MISSING node below node."""
    if not node.has_error:
        return None
    stack = [node]
    while stack:
        current = stack.pop()
        if current.is_error or current.is_missing:
            return current
        stack.extend(reversed([c for c in current.children if c.has_error or c.is_missing]))
    return node


def iter_nodes(node: Node, skip: frozenset[str] = frozenset()) -> Iterator[Node]:
    """Iterate over node and its descendants in pre-order.

    Descendants of nodes whose type is in ``skip`` are not visited (the
    skipped node itself is).
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if current.type not in skip:
            stack.extend(reversed(current.children))


def find_function_sites(parsed: ParsedScript) -> list[FunctionSite]:
    """Find top-level function declarations in source order.

    Includes declarations wrapped in an ``export`` statement, an anonymous
    ``export default function``, and declarations exported separately through
    a local ``export { name }`` list.
    """
    listed = exported_local_names(parsed)
    sites: list[FunctionSite] = []
    for statement in parsed.root.named_children:
        if statement.type in FUNCTION_DECLARATION_TYPES:
            name = statement.child_by_field_name("name")
            is_listed = name is not None and parsed.text(name) in listed
            sites.append(FunctionSite(node=statement, exported=is_listed))
        elif statement.type == "export_statement":
            exported = statement.child_by_field_name("declaration")
            if exported is None:
                exported = statement.child_by_field_name("value")
            if exported is not None and _is_function(exported):
                sites.append(FunctionSite(node=exported, exported=True))
    return sites


def exported_local_names(parsed: ParsedScript) -> set[str]:
    """Get the local names listed in top-level ``export { ... }`` clauses.

    ``export { create as start }`` contributes ``create``. Re-exports from
    another module (``export { a } from "./b"``) bind no local name and are
    skipped.
    """
    names: set[str] = set()
    for statement in parsed.root.named_children:
        if statement.type != "export_statement":
            continue
        if statement.child_by_field_name("source") is not None:
            continue
        for clause in statement.named_children:
            if clause.type != "export_clause":
                continue
            for specifier in clause.named_children:
                name = specifier.child_by_field_name("name")
                if specifier.type == "export_specifier" and name is not None:
                    names.add(parsed.text(name))
    return names


def has_exported_class(parsed: ParsedScript) -> bool:
    """Check whether any export statement exports a class."""
    for node in iter_nodes(parsed.root):
        if node.type != "export_statement":
            continue
        exported = node.child_by_field_name("declaration") or node.child_by_field_name("value")
        if exported is not None and exported.type in CLASS_TYPES:
            return True
    return False


def _is_function(node: Node) -> bool:
    if node.type in FUNCTION_DECLARATION_TYPES:
        return True
    return node.is_named and node.type in FUNCTION_EXPRESSION_TYPES
