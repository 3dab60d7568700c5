"""Utilities for safe Cypher query construction.

Labels, relationship types and property keys cannot be passed as Cypher
parameters, so they are validated against a strict identifier pattern
before being interpolated. Every value travels as a parameter.
"""

from __future__ import annotations

import re
from typing import Any

from graph.infrastructure.exceptions import InvalidCypherIdentifierError
from shared_kernel.outbox.operations import GraphWrite, NodeUpsert, RelationshipUpsert

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(value: str, kind: str = "identifier") -> str:
    """Ensure a label, type or key is safe to interpolate into Cypher.

    Args:
        value: The identifier to check
        kind: What the identifier is, for the error message

    Returns:
        The identifier unchanged

    Raises:
        InvalidCypherIdentifierError: If the identifier contains anything
            other than ASCII letters, digits and underscores
    """
    if not isinstance(value, str) or not _IDENTIFIER.match(value):
        raise InvalidCypherIdentifierError(f"Invalid Cypher {kind}: {value!r}")
    return value


def build_upsert_query(write: GraphWrite) -> tuple[str, dict[str, Any]]:
    """Render a GraphWrite as one parameterized Cypher statement.

    Nodes are merged first, then relationships between them. For each
    element the statement is::

        MERGE <pattern>
          ON CREATE SET x += $x_on_create
        SET x += $x_always

    so re-running the statement only touches the ``always`` properties.

    Args:
        write: The graph write to render

    Returns:
        (query, parameters)
    """
    clauses: list[str] = []
    parameters: dict[str, Any] = {}

    for node in write.nodes:
        _render_node(node, clauses, parameters)

    for index, relationship in enumerate(write.relationships):
        _render_relationship(index, relationship, clauses, parameters)

    return "\n".join(clauses), parameters


def _render_node(
    node: NodeUpsert,
    clauses: list[str],
    parameters: dict[str, Any],
) -> None:
    var = validate_identifier(node.ref, "node reference")
    label = validate_identifier(node.label, "label")

    parameters[f"{var}_id"] = node.id
    clauses.append(f"MERGE ({var}:{label} {{id: ${var}_id}})")
    _render_sets(var, node.on_create, node.always, clauses, parameters)


def _render_relationship(
    index: int,
    relationship: RelationshipUpsert,
    clauses: list[str],
    parameters: dict[str, Any],
) -> None:
    var = f"rel{index}"
    start = validate_identifier(relationship.start, "node reference")
    end = validate_identifier(relationship.end, "node reference")
    rel_type = validate_identifier(relationship.type, "relationship type")

    key_parts = []
    for key, value in relationship.key.items():
        prop = validate_identifier(key, "property key")
        parameters[f"{var}_key_{prop}"] = value
        key_parts.append(f"{prop}: ${var}_key_{prop}")
    key_map = f" {{{', '.join(key_parts)}}}" if key_parts else ""

    clauses.append(f"MERGE ({start})-[{var}:{rel_type}{key_map}]->({end})")
    _render_sets(var, relationship.on_create, relationship.always, clauses, parameters)


def _render_sets(
    var: str,
    on_create: Any,
    always: Any,
    clauses: list[str],
    parameters: dict[str, Any],
) -> None:
    if on_create:
        for key in on_create:
            validate_identifier(key, "property key")
        parameters[f"{var}_on_create"] = dict(on_create)
        clauses.append(f"  ON CREATE SET {var} += ${var}_on_create")

    if always:
        for key in always:
            validate_identifier(key, "property key")
        parameters[f"{var}_always"] = dict(always)
        clauses.append(f"SET {var} += ${var}_always")
