"""Event transformers for the graph projection.

Each transformer turns one event kind into a single GraphWrite. The write
is fully determined by the payload and the observation time, and every
element is a MERGE on a fingerprint identity, so replaying an event any
number of times leaves the graph in the same state apart from the
last-seen timestamps.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from projection.domain.payloads import (
    NOTE_INSERT,
    PARTICIPATION_INSERT,
    RELATIONSHIP_INSERT,
    NoteInsertPayload,
    ParticipationInsertPayload,
    RelationshipInsertPayload,
    parse_payload,
)
from shared_kernel.graph_primitives import composite_fingerprint, fingerprint
from shared_kernel.outbox.exceptions import PayloadValidationError
from shared_kernel.outbox.operations import GraphWrite, NodeUpsert, RelationshipUpsert


def _timestamp(value: datetime) -> str:
    return value.isoformat()


def _parse(event_kind: str, payload: dict[str, Any], expected: type) -> Any:
    parsed = parse_payload(event_kind, payload)
    if not isinstance(parsed, expected):
        raise PayloadValidationError(event_kind, "unsupported event kind")
    return parsed


class RelationshipInsertTransformer:
    """Projects ``relationship.insert`` events.

    Graph effect::

        (s:Entity {id: fp(subject)})-[:ASSERTS {predicate}]->(o:Entity {id: fp(object)})

    Entities get ``name`` and ``created_at`` on creation. The relationship
    gets ``created_at`` (and ``evidence_id`` when given) on creation and
    ``last_confirmed_at`` on every observation.
    """

    def supported_event_kinds(self) -> frozenset[str]:
        return frozenset({RELATIONSHIP_INSERT})

    def transform(
        self,
        event_kind: str,
        payload: dict[str, Any],
        observed_at: datetime,
    ) -> GraphWrite:
        parsed: RelationshipInsertPayload = _parse(
            event_kind, payload, RelationshipInsertPayload
        )
        created_at = _timestamp(parsed.created_at or observed_at)

        relationship_on_create: dict[str, Any] = {"created_at": created_at}
        if parsed.evidence_id is not None:
            relationship_on_create["evidence_id"] = parsed.evidence_id

        return GraphWrite(
            event_kind=event_kind,
            nodes=(
                NodeUpsert(
                    ref="s",
                    label="Entity",
                    id=fingerprint(parsed.subject),
                    on_create={"name": parsed.subject, "created_at": created_at},
                ),
                NodeUpsert(
                    ref="o",
                    label="Entity",
                    id=fingerprint(parsed.object),
                    on_create={"name": parsed.object, "created_at": created_at},
                ),
            ),
            relationships=(
                RelationshipUpsert(
                    start="s",
                    type="ASSERTS",
                    end="o",
                    key={"predicate": parsed.predicate},
                    on_create=relationship_on_create,
                    always={"last_confirmed_at": _timestamp(observed_at)},
                ),
            ),
        )


class NoteInsertTransformer:
    """Projects ``note.insert`` events.

    Graph effect::

        (n:Note {id: fp(note_id)})-[:SOURCED_FROM]->(d:SourceDocument {id: fp(source_url)})

    All properties are set on creation only.
    """

    def supported_event_kinds(self) -> frozenset[str]:
        return frozenset({NOTE_INSERT})

    def transform(
        self,
        event_kind: str,
        payload: dict[str, Any],
        observed_at: datetime,
    ) -> GraphWrite:
        parsed: NoteInsertPayload = _parse(event_kind, payload, NoteInsertPayload)
        created_at = _timestamp(parsed.created_at or observed_at)

        return GraphWrite(
            event_kind=event_kind,
            nodes=(
                NodeUpsert(
                    ref="n",
                    label="Note",
                    id=fingerprint(parsed.note_id),
                    on_create={
                        "note_id": parsed.note_id,
                        "content": parsed.content,
                        "created_at": created_at,
                    },
                ),
                NodeUpsert(
                    ref="d",
                    label="SourceDocument",
                    id=fingerprint(parsed.source_url),
                    on_create={"url": parsed.source_url, "created_at": created_at},
                ),
            ),
            relationships=(
                RelationshipUpsert(
                    start="n",
                    type="SOURCED_FROM",
                    end="d",
                    on_create={"created_at": created_at},
                ),
            ),
        )


class ParticipationInsertTransformer:
    """Projects ``participation.insert`` events.

    Graph effect::

        (d:Domain)-[:HAS_PARTICIPATION]->(p:Participation)-[:TRACKS]->(t:TrackedItem)

    The participation identity is the composite fingerprint of
    (subject_id, source_domain, source_url). Discovery metadata is set on
    creation; ``last_verified_at`` and ``updated_at`` are refreshed on
    every observation.
    """

    def supported_event_kinds(self) -> frozenset[str]:
        return frozenset({PARTICIPATION_INSERT})

    def transform(
        self,
        event_kind: str,
        payload: dict[str, Any],
        observed_at: datetime,
    ) -> GraphWrite:
        parsed: ParticipationInsertPayload = _parse(
            event_kind, payload, ParticipationInsertPayload
        )
        created_at = _timestamp(parsed.created_at or observed_at)
        observed = _timestamp(observed_at)

        participation_id = composite_fingerprint(
            parsed.subject_id, parsed.source_domain, parsed.source_url
        )

        return GraphWrite(
            event_kind=event_kind,
            nodes=(
                NodeUpsert(
                    ref="d",
                    label="Domain",
                    id=fingerprint(parsed.source_domain),
                    on_create={"name": parsed.source_domain, "created_at": created_at},
                ),
                NodeUpsert(
                    ref="t",
                    label="TrackedItem",
                    id=fingerprint(parsed.subject_id),
                    on_create={
                        "subject_id": parsed.subject_id,
                        "created_at": created_at,
                    },
                ),
                NodeUpsert(
                    ref="p",
                    label="Participation",
                    id=participation_id,
                    on_create={
                        "source_url": parsed.source_url,
                        "is_official": parsed.is_official,
                        "discovery_method": parsed.discovery_method.value,
                        "discovered_at": _timestamp(
                            parsed.discovered_at or observed_at
                        ),
                        "created_at": created_at,
                    },
                    always={"last_verified_at": observed, "updated_at": observed},
                ),
            ),
            relationships=(
                RelationshipUpsert(
                    start="d",
                    type="HAS_PARTICIPATION",
                    end="p",
                    on_create={"created_at": created_at},
                ),
                RelationshipUpsert(
                    start="p",
                    type="TRACKS",
                    end="t",
                    on_create={"created_at": created_at},
                ),
            ),
        )


def default_transformers() -> list[tuple[str, Any]]:
    """Return (name, transformer) pairs for every supported event family."""
    return [
        ("relationship", RelationshipInsertTransformer()),
        ("note", NoteInsertTransformer()),
        ("participation", ParticipationInsertTransformer()),
    ]
