"""Entry and tag domain models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class EntryType(str, Enum):
    ARTICLE = "ARTICLE"
    CODE_SNIPPET = "CODE_SNIPPET"
    BOOKMARK = "BOOKMARK"


class Tag(BaseModel):
    """A label from the shared tag vocabulary.

    Tags are global: names are unique across all owners, while the entries a
    tag is attached to stay owner-scoped through `EntryTag` rows.
    """

    id: str
    name: str
    color: str | None = None
    created_at: datetime


class EntryTag(BaseModel):
    """Join row attaching a tag to an entry."""

    entry_id: str
    tag_id: str


class Entry(BaseModel):
    """A stored knowledge item.

    Attributes:
        id: Immutable identifier
        title: Display title, never blank
        content: Body text (prose, code or a bookmark note)
        type: Entry kind; `language` and `url` only mean something for code
            snippets and bookmarks but are kept as written when the type changes
        metadata: Free-form string payload written by capture tools
        owner_id: Id of the owning user
        tags: Tags currently attached, in attachment order
    """

    id: str
    title: str
    content: str
    type: EntryType
    language: str | None = None
    url: str | None = None
    metadata: str | None = None
    created_at: datetime
    updated_at: datetime
    owner_id: str
    tags: list[Tag] = []


class EntryCreate(BaseModel):
    title: str
    content: str
    type: EntryType
    language: str | None = None
    url: str | None = None
    metadata: str | None = None
    tag_names: list[str] | None = None


class EntryUpdate(BaseModel):
    """Partial update; `tag_names=None` leaves tags alone, a list replaces them."""

    title: str | None = None
    content: str | None = None
    type: EntryType | None = None
    language: str | None = None
    url: str | None = None
    metadata: str | None = None
    tag_names: list[str] | None = None


class TagCreate(BaseModel):
    name: str
    color: str | None = None


class EntryFilter(BaseModel):
    """Filters for listing entries. Omitted or empty filters impose no constraint."""

    search: str | None = None
    types: set[EntryType] | None = None
    tag_names: set[str] | None = None
