"""Endpoints returning laid-out, render-ready graph scenes"""

from fastapi import APIRouter, Depends
from loguru import logger

from kvault.api.auth import get_owner_dependency
from kvault.api.endpoints import ERROR_RESPONSES, entry_filter_params
from kvault.config import settings
from kvault.domain.entry import EntryFilter
from kvault.graph.interaction import InteractionState
from kvault.graph.layout import LayoutEngine
from kvault.graph.query import build_graph, match_nodes
from kvault.graph.renderer import Scene, render, resolve_canvas
from kvault.graph_stores.base import GraphStore
from kvault.identity.base import IdentityProvider


def get_views_router(*, store: GraphStore, identity: IdentityProvider) -> APIRouter:
    router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)
    verify_token = get_owner_dependency(identity)

    # Sync handler: the layout is CPU-bound and runs in the threadpool.
    @router.get("/graph")
    def graph(
        entry_filter: EntryFilter = Depends(entry_filter_params),
        highlight: str | None = None,
        width: float | None = None,
        height: float | None = None,
        seed: int | None = None,
        owner_id: str = Depends(verify_token),
    ) -> Scene:
        """Filter, lay out to convergence and render the owner's knowledge graph.

        `highlight` rings the nodes matching a search query, as the search box does.
        """
        snapshot = store.snapshot(owner_id, entry_filter)
        knowledge_graph = build_graph(snapshot.entries, snapshot.relationships)
        canvas = resolve_canvas(width, height)

        layout = LayoutEngine(
            knowledge_graph,
            width=canvas.width,
            height=canvas.height,
            seed=settings.layout_seed if seed is None else seed,
        )
        frame = layout.run()
        if frame is not None:
            logger.debug(f"Graph layout settled after {frame.tick} ticks")

        state = InteractionState()
        if highlight:
            state = state.model_copy(
                update={
                    "search_input": highlight,
                    "search_query": highlight,
                    "match_set": match_nodes(knowledge_graph, highlight),
                }
            )
        return render(knowledge_graph, layout.positions(), state, canvas)

    return router
