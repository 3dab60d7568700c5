"""Graph write value objects.

These immutable value objects describe the upserts an event turns into.
They are produced by event transformers and consumed by the graph writer,
which renders each GraphWrite as one Cypher statement.

Every upsert has MERGE semantics: the node or relationship is matched on
its identity, ``on_create`` properties are only set when it is first
created, and ``always`` properties are refreshed on every observation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class NodeUpsert:
    """Create-if-absent operation for a node.

    Attributes:
        ref: Local name used by relationships in the same GraphWrite
        label: Node label (e.g., "Entity")
        id: Fingerprint identity of the node
        on_create: Properties written only when the node is created
        always: Properties written on every observation
    """

    ref: str
    label: str
    id: str
    on_create: Mapping[str, Any] = field(default_factory=dict)
    always: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RelationshipUpsert:
    """Create-if-absent operation for a relationship between two nodes.

    Attributes:
        start: ref of the start node
        type: Relationship type (e.g., "ASSERTS")
        end: ref of the end node
        key: Identity-bearing properties matched by MERGE (e.g., predicate)
        on_create: Properties written only when the relationship is created
        always: Properties written on every observation
    """

    start: str
    type: str
    end: str
    key: Mapping[str, Any] = field(default_factory=dict)
    on_create: Mapping[str, Any] = field(default_factory=dict)
    always: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GraphWrite:
    """One logical graph-store write produced by a single event.

    Applied atomically: either every upsert lands or none does.
    """

    event_kind: str
    nodes: tuple[NodeUpsert, ...]
    relationships: tuple[RelationshipUpsert, ...] = ()

    def __post_init__(self) -> None:
        refs = [node.ref for node in self.nodes]
        if len(refs) != len(set(refs)):
            raise ValueError(f"Duplicate node refs in {self.event_kind} write: {refs}")

        known = set(refs)
        for rel in self.relationships:
            missing = {rel.start, rel.end} - known
            if missing:
                raise ValueError(
                    f"Relationship {rel.type} references unknown nodes: "
                    f"{sorted(missing)}"
                )

    @property
    def operation_count(self) -> int:
        return len(self.nodes) + len(self.relationships)
