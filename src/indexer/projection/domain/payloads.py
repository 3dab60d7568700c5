"""Typed event payloads for the graph projection.

Producers write untyped JSON documents into the outbox. Each supported
event kind has a model here; ``parse_payload`` picks the model by event
kind (a tagged union) and rejects missing, empty or whitespace-only
required fields before anything is written to the graph.

Required text fields are validated but never normalized: their exact
value feeds the fingerprint, so stripping would change node identities.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidatorFunctionWrapHandler,
    WrapValidator,
    field_validator,
)

from shared_kernel.outbox.exceptions import PayloadValidationError

RELATIONSHIP_INSERT = "relationship.insert"
NOTE_INSERT = "note.insert"
PARTICIPATION_INSERT = "participation.insert"


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty or whitespace")
    return value


RequiredText = Annotated[str, Field(min_length=1), AfterValidator(_require_text)]


def _none_if_invalid(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


# Optional timestamps never reject an event; an unreadable value is treated
# as absent and the transformer uses the observation time instead.
OptionalTimestamp = Annotated[datetime | None, WrapValidator(_none_if_invalid)]


class DiscoveryMethod(StrEnum):
    """How a participation record was discovered."""

    MANUAL = "manual"
    CRAWL = "crawl"
    SEARCH = "search"
    IMPORT = "import"
    UNKNOWN = "unknown"


_DISCOVERY_METHODS = frozenset(method.value for method in DiscoveryMethod)


class _EventPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    created_at: OptionalTimestamp = Field(
        default=None, description="When the source row was created"
    )


class RelationshipInsertPayload(_EventPayload):
    """A (subject, predicate, object) assertion between two entities.

    Attributes:
        subject: Natural key of the subject entity
        predicate: Relationship predicate, part of the relationship identity
        object: Natural key of the object entity
        evidence_id: Identifier of the supporting evidence (optional)
        created_at: When the assertion was made (optional)
    """

    event_kind: Literal["relationship.insert"] = RELATIONSHIP_INSERT
    subject: RequiredText
    predicate: RequiredText
    object: RequiredText
    evidence_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("evidence_id", "evidence_crouton_id"),
    )


class NoteInsertPayload(_EventPayload):
    """A note extracted from a source document.

    Attributes:
        note_id: Natural key of the note (``crouton_id`` is accepted as an
            alias)
        source_url: URL of the document the note was taken from
        content: Note text (``text`` is accepted as an alias)
        created_at: When the note was created (optional)
    """

    event_kind: Literal["note.insert"] = NOTE_INSERT
    note_id: RequiredText = Field(
        validation_alias=AliasChoices("note_id", "crouton_id"),
    )
    source_url: RequiredText
    content: str = Field(
        default="",
        validation_alias=AliasChoices("content", "text"),
    )


class ParticipationInsertPayload(_EventPayload):
    """A tracked item observed on a source domain.

    Attributes:
        subject_id: Natural key of the tracked item
        source_domain: Domain the item was observed on
        source_url: Page the item was observed on
        is_official: Whether the domain is the item's official source
        discovery_method: How the participation was discovered; values
            outside DiscoveryMethod are stored as ``unknown``
        discovered_at: First discovery time (defaults to the observation time)
    """

    event_kind: Literal["participation.insert"] = PARTICIPATION_INSERT
    subject_id: RequiredText
    source_domain: RequiredText
    source_url: RequiredText
    is_official: bool = False
    discovery_method: DiscoveryMethod = DiscoveryMethod.UNKNOWN
    discovered_at: OptionalTimestamp = None

    @field_validator("discovery_method", mode="before")
    @classmethod
    def unrecognised_method_is_unknown(cls, value: Any) -> Any:
        if isinstance(value, str) and value in _DISCOVERY_METHODS:
            return value
        return DiscoveryMethod.UNKNOWN


EventPayload = Annotated[
    Union[RelationshipInsertPayload, NoteInsertPayload, ParticipationInsertPayload],
    Field(discriminator="event_kind"),
]

_PAYLOAD_ADAPTER: TypeAdapter[EventPayload] = TypeAdapter(EventPayload)

SUPPORTED_EVENT_KINDS = frozenset(
    {RELATIONSHIP_INSERT, NOTE_INSERT, PARTICIPATION_INSERT}
)


def parse_payload(event_kind: str, payload: Any) -> EventPayload:
    """Validate an outbox payload against the model for its event kind.

    Args:
        event_kind: The outbox record's event kind (the union tag)
        payload: The stored JSON document

    Returns:
        The typed payload

    Raises:
        PayloadValidationError: If the kind is not supported, the payload is
            not an object, or a required field is missing or invalid
    """
    if event_kind not in SUPPORTED_EVENT_KINDS:
        raise PayloadValidationError(event_kind, "unsupported event kind")
    if not isinstance(payload, dict):
        raise PayloadValidationError(
            event_kind, f"expected an object, got {type(payload).__name__}"
        )

    try:
        return _PAYLOAD_ADAPTER.validate_python({**payload, "event_kind": event_kind})
    except ValidationError as e:
        fields = tuple(_field_name(error["loc"]) for error in e.errors())
        details = "; ".join(
            f"{_field_name(error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise PayloadValidationError(event_kind, details, fields=fields) from e


def _field_name(loc: tuple[int | str, ...]) -> str:
    # The first element of loc is the union tag
    parts = [str(part) for part in loc[1:]] or [str(part) for part in loc]
    return ".".join(parts)
