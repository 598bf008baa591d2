from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from kvault.api.endpoints import get_auth_router, get_endpoints_router
from kvault.api.views import get_views_router
from kvault.config import settings
from kvault.errors import (
    Conflict,
    GraphError,
    NotFound,
    TransientIO,
    Unauthenticated,
    ValidationError,
)
from kvault.graph_stores.base import GraphStore
from kvault.identity.base import IdentityProvider

ERROR_STATUS = {
    Unauthenticated: 401,
    NotFound: 404,
    ValidationError: 422,
    Conflict: 409,
    TransientIO: 503,
}


async def handle_graph_error(request: Request, exc: GraphError) -> JSONResponse:
    """Convert a typed graph failure into an HTTP error response."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)), 500
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")

    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


def create_app(*, store: GraphStore, identity: IdentityProvider) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GraphError, handle_graph_error)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    app.include_router(router=get_auth_router(identity=identity))
    app.include_router(router=get_endpoints_router(store=store, identity=identity))
    app.include_router(router=get_views_router(store=store, identity=identity))

    return app
