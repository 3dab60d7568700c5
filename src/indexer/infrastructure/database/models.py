"""SQLAlchemy declarative base for the outbox mapping.

The indexer maps a single table it does not own. The metadata is still
complete enough for ``create_all`` so integration tests can build a
disposable copy of the table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# Matches the constraint names used by the producer's DDL
NAMING_CONVENTION = {
    "ix": "idx_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "%(table_name)s_pkey",
}


class Base(DeclarativeBase):
    """Base class for the indexer's ORM models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: dict[type, Any] = {
        datetime: DateTime(timezone=True),
        dict[str, Any]: JSONB,
    }
