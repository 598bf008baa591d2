"""Knowledge-graph engine: query, layout, interaction, rendering and the live session."""

from kvault.graph.layout import LayoutEngine
from kvault.graph.query import KnowledgeGraph, build_graph, match_nodes
from kvault.graph.session import Debouncer, GraphSession

__all__ = [
    "Debouncer",
    "GraphSession",
    "KnowledgeGraph",
    "LayoutEngine",
    "build_graph",
    "match_nodes",
]
