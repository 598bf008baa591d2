from kvault.graph_stores.base import GraphStore
from kvault.graph_stores.local_store import LocalGraphStore

__all__ = ["GraphStore", "LocalGraphStore"]
