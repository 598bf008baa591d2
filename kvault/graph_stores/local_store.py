import json
import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List
from uuid import uuid4

from kvault.domain.entry import Entry, EntryCreate, EntryFilter, EntryTag, EntryUpdate, Tag
from kvault.domain.relationships import GraphSnapshot, Relationship, RelationshipCreate
from kvault.errors import NotFound, TransientIO, ValidationError
from kvault.graph_stores.base import GraphStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class LocalGraphStore(GraphStore):
    """Local graph store that keeps entries, tags and relationships in a JSON file."""

    def __init__(
        self,
        filepath: str | Path | None = None,
        *,
        enforce_relationship_ownership: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        """Initialize LocalGraphStore.

        Args:
            filepath: Path to the store file. If provided and exists, will auto-load.
                     If provided, every mutation is written back to this path.
                     If not provided, creates an empty store in memory only.
            enforce_relationship_ownership: Require both endpoints of a new
                     relationship to belong to the creating owner.
            clock: Source of timestamps for created/updated fields
            id_factory: Source of new record ids
        """
        self._filepath = str(filepath) if filepath else None
        self._enforce_relationship_ownership = enforce_relationship_ownership
        self._clock = clock
        self._new_id = id_factory

        self._entries: Dict[str, Entry] = {}
        self._tags: Dict[str, Tag] = {}
        self._entry_tags: Dict[str, List[str]] = {}
        self._relationships: Dict[str, Relationship] = {}

        if self._filepath and Path(self._filepath).exists():
            try:
                with open(self._filepath, "r") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise TransientIO(f"Could not read graph store {self._filepath}: {e}") from e
            self._entries = {
                entry_id: Entry(**entry_data) for entry_id, entry_data in data["entries"].items()
            }
            self._tags = {tag_id: Tag(**tag_data) for tag_id, tag_data in data["tags"].items()}
            for row in data.get("entry_tags", []):
                entry_tag = EntryTag(**row)
                self._entry_tags.setdefault(entry_tag.entry_id, []).append(entry_tag.tag_id)
            self._relationships = {
                rel_id: Relationship(**rel_data)
                for rel_id, rel_data in data.get("relationships", {}).items()
            }
            logger.info(
                f"Loaded {len(self._entries)} entries and "
                f"{len(self._relationships)} relationships from {self._filepath}"
            )

        self._rebuild_indices()

    @classmethod
    def from_data(
        cls,
        entries: Iterable[Entry] = (),
        relationships: Iterable[Relationship] = (),
        **kwargs,
    ) -> "LocalGraphStore":
        """Create LocalGraphStore from provided records (useful for testing).

        Tags attached to the given entries are registered in the vocabulary.
        """
        instance = cls(filepath=None, **kwargs)
        for entry in entries:
            instance._entries[entry.id] = entry.model_copy(update={"tags": []})
            instance._entry_tags[entry.id] = []
            for tag in entry.tags:
                instance._tags.setdefault(tag.id, tag)
                instance._entry_tags[entry.id].append(tag.id)
        instance._relationships = {rel.id: rel for rel in relationships}
        instance._rebuild_indices()
        return instance

    def _rebuild_indices(self) -> None:
        self._tag_ids_by_name = {tag.name: tag.id for tag in self._tags.values()}
        self._outgoing: Dict[str, List[str]] = defaultdict(list)
        self._incoming: Dict[str, List[str]] = defaultdict(list)
        for rel in self._relationships.values():
            self._index_relationship(rel)

    def _index_relationship(self, rel: Relationship) -> None:
        self._outgoing[rel.from_entry_id].append(rel.id)
        self._incoming[rel.to_entry_id].append(rel.id)

    def _unindex_relationship(self, rel: Relationship) -> None:
        self._outgoing[rel.from_entry_id].remove(rel.id)
        self._incoming[rel.to_entry_id].remove(rel.id)

    def _hydrate(self, entry: Entry) -> Entry:
        tags = [self._tags[tag_id] for tag_id in self._entry_tags.get(entry.id, [])]
        return entry.model_copy(update={"tags": tags})

    def _owned_entry(self, owner_id: str, entry_id: str) -> Entry:
        entry = self._entries.get(entry_id)
        if entry is None or entry.owner_id != owner_id:
            raise NotFound(f"Entry {entry_id} not found")
        return entry

    def _tag_names(self, entry_id: str) -> set[str]:
        return {self._tags[tag_id].name for tag_id in self._entry_tags.get(entry_id, [])}

    def _matches(self, entry: Entry, entry_filter: EntryFilter) -> bool:
        if entry_filter.search:
            needle = entry_filter.search.lower()
            if needle not in entry.title.lower() and needle not in entry.content.lower():
                return False
        if entry_filter.types and entry.type not in entry_filter.types:
            return False
        if entry_filter.tag_names and not (self._tag_names(entry.id) & entry_filter.tag_names):
            return False
        return True

    def list_entries(self, owner_id: str, entry_filter: EntryFilter | None = None) -> List[Entry]:
        """List the owner's entries matching the filter, most recently updated first.

        Search is a case-insensitive substring match on title or content, the tag
        filter requires at least one of the named tags, and all filters AND-combine.
        """
        entry_filter = entry_filter or EntryFilter()
        matching = [
            entry
            for entry in self._entries.values()
            if entry.owner_id == owner_id and self._matches(entry, entry_filter)
        ]
        matching.sort(key=lambda e: e.updated_at, reverse=True)
        return [self._hydrate(entry) for entry in matching]

    def get_entry(self, owner_id: str, entry_id: str) -> Entry | None:
        """Get one of the owner's entries by its ID."""
        entry = self._entries.get(entry_id)
        if entry is None or entry.owner_id != owner_id:
            return None
        return self._hydrate(entry)

    def create_entry(self, owner_id: str, data: EntryCreate) -> Entry:
        """Create an entry, attaching tags by find-or-create on their names."""
        title = self._require_text(data.title, "title")
        now = self._clock()
        entry = Entry(
            id=self._new_id(),
            title=title,
            content=data.content,
            type=data.type,
            language=data.language,
            url=data.url,
            metadata=data.metadata,
            created_at=now,
            updated_at=now,
            owner_id=owner_id,
        )
        with self._mutation():
            self._entry_tags[entry.id] = self._resolve_tags(data.tag_names or [])
            self._entries[entry.id] = entry
        logger.debug(f"Created entry {entry.id} for owner {owner_id}")
        return self._hydrate(entry)

    def update_entry(self, owner_id: str, entry_id: str, data: EntryUpdate) -> Entry:
        """Update an entry; a given tag list replaces the whole tag set."""
        entry = self._owned_entry(owner_id, entry_id)
        changes = data.model_dump(exclude_unset=True, exclude={"tag_names"})
        for required in ("title", "content", "type"):
            if changes.get(required, "") is None:
                del changes[required]
        if "title" in changes:
            changes["title"] = self._require_text(changes["title"], "title")

        changes["updated_at"] = self._clock()
        updated = entry.model_copy(update=changes)
        with self._mutation():
            if data.tag_names is not None:
                self._entry_tags[entry_id] = self._resolve_tags(data.tag_names)
            self._entries[entry_id] = updated
        logger.debug(f"Updated entry {entry_id} for owner {owner_id}")
        return self._hydrate(updated)

    def delete_entry(self, owner_id: str, entry_id: str) -> bool:
        """Delete an entry and every relationship that references it."""
        self._owned_entry(owner_id, entry_id)
        attached = set(self._outgoing.get(entry_id, [])) | set(self._incoming.get(entry_id, []))
        with self._mutation():
            for rel_id in attached:
                self._unindex_relationship(self._relationships.pop(rel_id))
            self._outgoing.pop(entry_id, None)
            self._incoming.pop(entry_id, None)
            del self._entries[entry_id]
            self._entry_tags.pop(entry_id, None)
        logger.debug(f"Deleted entry {entry_id} and {len(attached)} relationships")
        return True

    def list_tags(self) -> List[Tag]:
        """Get the shared tag vocabulary sorted by name."""
        return sorted(self._tags.values(), key=lambda t: t.name)

    def create_tag(self, name: str, color: str | None = None) -> Tag:
        """Find or create a tag by name.

        An existing tag without a color adopts the given one.
        """
        with self._mutation():
            tag_id = self._resolve_tags([name])[0]
            tag = self._tags[tag_id]
            if color and not tag.color:
                tag = tag.model_copy(update={"color": color})
                self._tags[tag_id] = tag
        return tag

    def list_relationships(self, owner_id: str) -> List[Relationship]:
        """Get all of the owner's relationships in creation order."""
        return [rel for rel in self._relationships.values() if rel.owner_id == owner_id]

    def create_relationship(self, owner_id: str, data: RelationshipCreate) -> Relationship:
        """Create a directed relationship between two entries.

        Both endpoints must exist. With ownership enforcement on, both must also
        belong to the creating owner.
        """
        for entry_id in (data.from_entry_id, data.to_entry_id):
            self._require_text(entry_id, "entry id")
            if self._enforce_relationship_ownership:
                self._owned_entry(owner_id, entry_id)
            elif entry_id not in self._entries:
                raise NotFound(f"Entry {entry_id} not found")

        rel = Relationship(
            id=self._new_id(),
            type=data.type,
            description=data.description,
            from_entry_id=data.from_entry_id,
            to_entry_id=data.to_entry_id,
            owner_id=owner_id,
            created_at=self._clock(),
        )
        with self._mutation():
            self._relationships[rel.id] = rel
            self._index_relationship(rel)
        logger.debug(f"Created {rel.type.value} relationship {rel.id} for owner {owner_id}")
        return rel

    def delete_relationship(self, owner_id: str, relationship_id: str) -> bool:
        """Delete one of the owner's relationships."""
        rel = self._relationships.get(relationship_id)
        if rel is None or rel.owner_id != owner_id:
            raise NotFound(f"Relationship {relationship_id} not found")
        with self._mutation():
            del self._relationships[relationship_id]
            self._unindex_relationship(rel)
        return True

    def snapshot(self, owner_id: str, entry_filter: EntryFilter | None = None) -> GraphSnapshot:
        """Get filtered entries together with the owner relationships touching them."""
        entries = self.list_entries(owner_id, entry_filter)
        rel_ids: dict[str, None] = {}
        for entry in entries:
            for rel_id in self._outgoing.get(entry.id, []) + self._incoming.get(entry.id, []):
                rel_ids[rel_id] = None
        relationships = [
            self._relationships[rel_id]
            for rel_id in rel_ids
            if self._relationships[rel_id].owner_id == owner_id
        ]
        return GraphSnapshot(entries=entries, relationships=relationships)

    def _resolve_tags(self, names: list[str]) -> list[str]:
        """Find or create tags for the given names, returning unique tag ids in order."""
        tag_ids: list[str] = []
        for name in [self._require_text(raw_name, "tag name") for raw_name in names]:
            tag_id = self._tag_ids_by_name.get(name)
            if tag_id is None:
                tag = Tag(id=self._new_id(), name=name, created_at=self._clock())
                self._tags[tag.id] = tag
                self._tag_ids_by_name[name] = tag.id
                tag_id = tag.id
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)
        return tag_ids

    @staticmethod
    def _require_text(value: str, field: str) -> str:
        stripped = value.strip() if value else ""
        if not stripped:
            raise ValidationError(f"The {field} must not be empty")
        return stripped

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """Apply a change and write it back, restoring the previous state if either fails.

        A failed write leaves the store as it was, so callers can retry on `TransientIO`.
        """
        entries = dict(self._entries)
        tags = dict(self._tags)
        entry_tags = {entry_id: list(tag_ids) for entry_id, tag_ids in self._entry_tags.items()}
        relationships = dict(self._relationships)
        try:
            yield
            if self._filepath:
                self.save()
        except Exception:
            self._entries = entries
            self._tags = tags
            self._entry_tags = entry_tags
            self._relationships = relationships
            self._rebuild_indices()
            raise

    def save(self, filepath: str | None = None) -> None:
        """Save the graph store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        save_path = str(save_path)
        data = {
            "entries": {
                entry_id: entry.model_dump(mode="json", exclude={"tags"})
                for entry_id, entry in self._entries.items()
            },
            "tags": {tag_id: tag.model_dump(mode="json") for tag_id, tag in self._tags.items()},
            "entry_tags": [
                {"entry_id": entry_id, "tag_id": tag_id}
                for entry_id, tag_ids in self._entry_tags.items()
                for tag_id in tag_ids
            ],
            "relationships": {
                rel_id: rel.model_dump(mode="json") for rel_id, rel in self._relationships.items()
            },
        }
        try:
            Path(save_path).parent.mkdir(parents=True, exist_ok=True)
            with open(save_path, "w") as f:
                json.dump(data, f)
        except OSError as e:
            raise TransientIO(f"Could not write graph store {save_path}: {e}") from e
