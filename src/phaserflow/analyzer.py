"""Instantiation analysis for scene functions.

Finds locals initialized with ``new`` and decides which of them the function
publishes on the scene, i.e. assigns back under the same name:

    const hero = new Hero(this);
    this.hero = hero;           // or scene.hero = hero once rewritten

Publication is a naming convention, not a dataflow fact: the assignment only
has to use the same identifier on both sides. Nothing checks that the local
still holds the constructed object at that point.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tree_sitter import Node

from phaserflow.syntax import ParsedScript, iter_nodes
from phaserflow.type_mapper import FALLBACK_TYPE


@dataclass(frozen=True)
class InstantiationRecord:
    """A local variable initialized by a constructor call.

    Records are keyed by declaration site so that two declarations of the
    same name in disjoint blocks stay distinct.
    """

    variable_name: str
    constructed_type: str
    declaration_site: int


@dataclass
class InstantiationAnalysis:
    """Result of analyzing one function body."""

    records: list[InstantiationRecord] = field(default_factory=list)
    published: list[str] = field(default_factory=list)

    def types_for(self, name: str) -> list[str]:
        """Get the distinct constructed types declared under name, in source order."""
        types: list[str] = []
        for record in self.records:
            if record.variable_name == name and record.constructed_type not in types:
                types.append(record.constructed_type)
        return types

    def published_fields(self) -> list[tuple[str, list[str]]]:
        """Get (name, constructed types) for every published local, in publication order."""
        return [(name, self.types_for(name)) for name in self.published]


def analyze_function(
    parsed: ParsedScript, body: Node, context_name: str
) -> InstantiationAnalysis:
    """Analyze a function body for published instantiations.

    Args:
        parsed: The script the body belongs to
        body: The function body node
        context_name: Name of the injected scene parameter; assignments onto
            it count as publications just like assignments onto ``this``

    Returns:
        InstantiationAnalysis for the body
    """
    analysis = InstantiationAnalysis()

    for node in iter_nodes(body):
        if node.type == "variable_declarator":
            record = _instantiation_record(parsed, node)
            if record is not None:
                analysis.records.append(record)

    declared = {record.variable_name for record in analysis.records}

    # Separate pass so that publication does not depend on visiting order
    for node in iter_nodes(body):
        if node.type != "assignment_expression":
            continue
        name = _published_name(parsed, node, context_name)
        if name is not None and name in declared and name not in analysis.published:
            analysis.published.append(name)

    return analysis


def constructed_type_name(parsed: ParsedScript, new_expression: Node) -> str:
    """Get the type name a ``new`` expression constructs.

    ``new Hero()`` gives ``Hero``, ``new Phaser.GameObjects.Sprite()`` the
    qualified name, and TypeScript type arguments are kept
    (``new Map<string, Hero>()``). Anything else (``new (factory())()``)
    falls back to ``any``.
    """
    constructor = new_expression.child_by_field_name("constructor")
    if constructor is None or not _is_qualified_name(constructor):
        return FALLBACK_TYPE

    name = "".join(parsed.text(constructor).split())
    type_arguments = new_expression.child_by_field_name("type_arguments")
    if type_arguments is not None:
        name += parsed.text(type_arguments)
    return name


def is_context_receiver(parsed: ParsedScript, node: Node | None, context_name: str) -> bool:
    """Check whether node is ``this`` or the scene parameter identifier."""
    if node is None:
        return False
    if node.type == "this":
        return True
    return node.type == "identifier" and parsed.text(node) == context_name


def _instantiation_record(parsed: ParsedScript, declarator: Node) -> InstantiationRecord | None:
    name = declarator.child_by_field_name("name")
    value = declarator.child_by_field_name("value")
    if name is None or value is None:
        return None
    if name.type != "identifier" or value.type != "new_expression":
        return None
    return InstantiationRecord(
        variable_name=parsed.text(name),
        constructed_type=constructed_type_name(parsed, value),
        declaration_site=declarator.start_byte,
    )


def _published_name(parsed: ParsedScript, assignment: Node, context_name: str) -> str | None:
    left = assignment.child_by_field_name("left")
    right = assignment.child_by_field_name("right")
    if left is None or right is None:
        return None
    if left.type != "member_expression" or right.type != "identifier":
        return None
    if not is_context_receiver(parsed, left.child_by_field_name("object"), context_name):
        return None

    prop = left.child_by_field_name("property")
    if prop is None or prop.type != "property_identifier":
        return None

    name = parsed.text(right)
    return name if parsed.text(prop) == name else None


def _is_qualified_name(node: Node) -> bool:
    while node.type == "member_expression":
        prop = node.child_by_field_name("property")
        if prop is None or prop.type != "property_identifier":
            return False
        node = node.child_by_field_name("object")
        if node is None:
            return False
    return node.type == "identifier"
