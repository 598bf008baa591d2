"""Export of an owner's entries and relationships as JSON or Markdown."""

from datetime import datetime
from typing import Any, List

from kvault.domain.entry import Entry
from kvault.domain.relationships import Relationship

EXPORT_VERSION = "1.0"


def _relationship_view(rel: Relationship, other: Entry | None) -> dict[str, Any]:
    return {
        "id": rel.id,
        "type": rel.type.value,
        "description": rel.description,
        "entry": {"id": other.id, "title": other.title} if other else None,
    }


def export_json(
    entries: List[Entry], relationships: List[Relationship], now: datetime
) -> dict[str, Any]:
    """Build the JSON export document.

    Each entry carries its tags plus its outgoing (`from_relations`) and
    incoming (`to_relations`) relationships with the title of the entry at the
    other end.
    """
    by_id = {entry.id: entry for entry in entries}
    exported = []
    for entry in entries:
        data = entry.model_dump(mode="json")
        data["from_relations"] = [
            _relationship_view(rel, by_id.get(rel.to_entry_id))
            for rel in relationships
            if rel.from_entry_id == entry.id
        ]
        data["to_relations"] = [
            _relationship_view(rel, by_id.get(rel.from_entry_id))
            for rel in relationships
            if rel.to_entry_id == entry.id
        ]
        exported.append(data)

    return {"version": EXPORT_VERSION, "export_date": now.isoformat(), "entries": exported}


def export_markdown(entries: List[Entry], relationships: List[Relationship], now: datetime) -> str:
    """Render entries as one Markdown document, one section per entry."""
    titles = {entry.id: entry.title for entry in entries}
    lines = ["# Knowledge Vault Export", "", f"Export Date: {now.date().isoformat()}", ""]

    for entry in entries:
        lines += [f"## {entry.title}", "", f"**Type:** {entry.type.value}", ""]
        if entry.tags:
            lines += [f"**Tags:** {', '.join(tag.name for tag in entry.tags)}", ""]
        if entry.url:
            lines += [f"**URL:** {entry.url}", ""]
        if entry.language:
            lines += [f"**Language:** {entry.language}", ""]
        lines += [entry.content, ""]

        outgoing = [rel for rel in relationships if rel.from_entry_id == entry.id]
        incoming = [rel for rel in relationships if rel.to_entry_id == entry.id]
        if outgoing or incoming:
            lines.append("**Relationships:**")
            for rel in outgoing:
                lines.append(
                    f"- {rel.type.value}: → {titles.get(rel.to_entry_id, rel.to_entry_id)}"
                )
            for rel in incoming:
                lines.append(
                    f"- {rel.type.value}: ← {titles.get(rel.from_entry_id, rel.from_entry_id)}"
                )
            lines.append("")

        lines += ["---", ""]

    return "\n".join(lines)
