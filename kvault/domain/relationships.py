"""Relationship domain models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from kvault.domain.entry import Entry


class RelationshipType(str, Enum):
    RELATED_TO = "RELATED_TO"
    SOURCE_FOR = "SOURCE_FOR"
    INSPIRED_BY = "INSPIRED_BY"
    REFERENCES = "REFERENCES"
    CONTRADICTS = "CONTRADICTS"
    BUILDS_ON = "BUILDS_ON"


class Relationship(BaseModel):
    """A directed, typed edge between two entries of the same owner."""

    id: str
    type: RelationshipType
    description: str | None = None
    from_entry_id: str
    to_entry_id: str
    owner_id: str
    created_at: datetime


class RelationshipCreate(BaseModel):
    from_entry_id: str
    to_entry_id: str
    type: RelationshipType
    description: str | None = None


class GraphSnapshot(BaseModel):
    """Filtered entries plus every owner relationship touching at least one of them."""

    entries: list[Entry] = []
    relationships: list[Relationship] = []
