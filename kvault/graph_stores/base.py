from typing import List, Protocol

from kvault.domain.entry import Entry, EntryCreate, EntryFilter, EntryUpdate, Tag
from kvault.domain.relationships import GraphSnapshot, Relationship, RelationshipCreate


class GraphStore(Protocol):
    def list_entries(self, owner_id: str, entry_filter: EntryFilter | None = None) -> List[Entry]:
        """List the owner's entries matching the filter, most recently updated first."""
        ...

    def get_entry(self, owner_id: str, entry_id: str) -> Entry | None:
        """Get one of the owner's entries by its ID."""
        ...

    def create_entry(self, owner_id: str, data: EntryCreate) -> Entry:
        """Create an entry, attaching tags by find-or-create on their names."""
        ...

    def update_entry(self, owner_id: str, entry_id: str, data: EntryUpdate) -> Entry:
        """Update an entry; a given tag list replaces the whole tag set."""
        ...

    def delete_entry(self, owner_id: str, entry_id: str) -> bool:
        """Delete an entry and every relationship that references it."""
        ...

    def list_tags(self) -> List[Tag]:
        """Get the shared tag vocabulary sorted by name."""
        ...

    def create_tag(self, name: str, color: str | None = None) -> Tag:
        """Find or create a tag by name."""
        ...

    def list_relationships(self, owner_id: str) -> List[Relationship]:
        """Get all of the owner's relationships."""
        ...

    def create_relationship(self, owner_id: str, data: RelationshipCreate) -> Relationship:
        """Create a directed relationship between two entries."""
        ...

    def delete_relationship(self, owner_id: str, relationship_id: str) -> bool:
        """Delete one of the owner's relationships."""
        ...

    def snapshot(self, owner_id: str, entry_filter: EntryFilter | None = None) -> GraphSnapshot:
        """Get filtered entries together with the relationships touching them."""
        ...

    def save(self, filepath: str | None = None) -> None:
        """Persist the store."""
        ...
