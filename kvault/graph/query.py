"""Turning filtered entries and their relationships into a node-link graph."""

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from pydantic import BaseModel

from kvault.domain.entry import Entry, EntryType, Tag
from kvault.domain.relationships import Relationship, RelationshipType


class GraphNode(BaseModel):
    """One visualized entry."""

    id: str
    title: str
    type: EntryType
    content: str
    tags: list[Tag] = []
    created_at: datetime


class GraphEdge(BaseModel):
    """One visualized relationship, keyed by the relationship id."""

    id: str
    source: str
    target: str
    type: RelationshipType
    description: str | None = None


class KnowledgeGraph:
    """Directed labeled multigraph with forward and backward incident-edge indices.

    Nodes and edges keep their insertion order; edges are only ever stored when
    both endpoints are nodes of the graph.
    """

    def __init__(self, nodes: list[GraphNode], edges: list[GraphEdge]) -> None:
        self.nodes = nodes
        self.edges = edges
        self._nodes_by_id = {node.id: node for node in nodes}
        self._edges_by_id = {edge.id: edge for edge in edges}
        self._outgoing: dict[str, list[GraphEdge]] = defaultdict(list)
        self._incoming: dict[str, list[GraphEdge]] = defaultdict(list)
        for edge in edges:
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, node_id: str) -> GraphNode | None:
        return self._nodes_by_id.get(node_id)

    def edge(self, edge_id: str) -> GraphEdge | None:
        return self._edges_by_id.get(edge_id)

    def outgoing(self, node_id: str) -> list[GraphEdge]:
        return list(self._outgoing.get(node_id, []))

    def incoming(self, node_id: str) -> list[GraphEdge]:
        return list(self._incoming.get(node_id, []))

    def incident_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges leaving or entering the node, self-loops counted once."""
        seen: dict[str, GraphEdge] = {}
        for edge in self._outgoing.get(node_id, []) + self._incoming.get(node_id, []):
            seen.setdefault(edge.id, edge)
        return list(seen.values())

    def neighbors(self, node_id: str) -> set[str]:
        """Node ids at graph distance 1, ignoring edge direction."""
        result = {edge.target for edge in self._outgoing.get(node_id, [])}
        result.update(edge.source for edge in self._incoming.get(node_id, []))
        result.discard(node_id)
        return result

    def degree(self, node_id: str) -> int:
        return len(self._outgoing.get(node_id, [])) + len(self._incoming.get(node_id, []))


def build_graph(entries: Iterable[Entry], relationships: Iterable[Relationship]) -> KnowledgeGraph:
    """Build the induced subgraph of the given entries.

    One node per distinct entry id and one edge per distinct relationship id.
    Relationships with an endpoint outside the entry set are dropped; parallel
    relationships between the same pair are kept as separate edges.
    """
    nodes: dict[str, GraphNode] = {}
    for entry in entries:
        if entry.id in nodes:
            continue
        nodes[entry.id] = GraphNode(
            id=entry.id,
            title=entry.title,
            type=entry.type,
            content=entry.content,
            tags=list(entry.tags),
            created_at=entry.created_at,
        )

    edges: dict[str, GraphEdge] = {}
    for rel in relationships:
        if rel.id in edges:
            continue
        if rel.from_entry_id not in nodes or rel.to_entry_id not in nodes:
            continue
        edges[rel.id] = GraphEdge(
            id=rel.id,
            source=rel.from_entry_id,
            target=rel.to_entry_id,
            type=rel.type,
            description=rel.description,
        )

    return KnowledgeGraph(list(nodes.values()), list(edges.values()))


def match_nodes(graph: KnowledgeGraph, query: str) -> frozenset[str]:
    """Ids of nodes whose title, content or any tag name contains the query, ignoring case."""
    if not query.strip():
        return frozenset()
    needle = query.lower()
    return frozenset(
        node.id
        for node in graph.nodes
        if needle in node.title.lower()
        or needle in node.content.lower()
        or any(needle in tag.name.lower() for tag in node.tags)
    )
