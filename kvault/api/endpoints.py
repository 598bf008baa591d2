from datetime import datetime, timezone
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from loguru import logger

from kvault.api.auth import get_owner_dependency
from kvault.api.schemas import ErrorResponse, LoginRequest, SignupRequest
from kvault.domain.entry import (
    Entry,
    EntryCreate,
    EntryFilter,
    EntryType,
    EntryUpdate,
    Tag,
    TagCreate,
)
from kvault.domain.relationships import Relationship, RelationshipCreate
from kvault.domain.user import AuthPayload, User
from kvault.errors import NotFound
from kvault.export import export_json, export_markdown
from kvault.graph_stores.base import GraphStore
from kvault.identity.base import IdentityProvider

ERROR_RESPONSES: dict = {
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def entry_filter_params(
    search: str | None = None,
    tag_names: List[str] = Query(default=[]),  # noqa: B008
    type: List[EntryType] = Query(default=[]),  # noqa: B008
) -> EntryFilter:
    """Entry filter from query parameters; `tag_names` and `type` may repeat."""
    return EntryFilter(
        search=search or None,
        types=set(type) or None,
        tag_names=set(tag_names) or None,
    )


def get_auth_router(*, identity: IdentityProvider) -> APIRouter:
    router = APIRouter(prefix="/api")
    verify_token = get_owner_dependency(identity)

    @router.post("/auth/signup")
    async def signup(body: SignupRequest) -> AuthPayload:
        return identity.signup(body.email, body.password, body.name)

    @router.post("/auth/login")
    async def login(body: LoginRequest) -> AuthPayload:
        return identity.login(body.email, body.password)

    @router.get("/me")
    async def me(owner_id: str = Depends(verify_token)) -> User:
        user = identity.get_user(owner_id)
        if user is None:
            raise NotFound(f"User {owner_id} not found")
        return user

    return router


def get_endpoints_router(*, store: GraphStore, identity: IdentityProvider) -> APIRouter:
    router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)
    verify_token = get_owner_dependency(identity)

    @router.get("/entries")
    async def list_entries(
        entry_filter: EntryFilter = Depends(entry_filter_params),
        owner_id: str = Depends(verify_token),
    ) -> List[Entry]:
        return store.list_entries(owner_id, entry_filter)

    @router.get("/entries/{entry_id}")
    async def get_entry(entry_id: str, owner_id: str = Depends(verify_token)) -> Entry:
        entry = store.get_entry(owner_id, entry_id)
        if entry is None:
            raise NotFound(f"Entry {entry_id} not found")
        return entry

    @router.post("/entries", status_code=201)
    async def create_entry(body: EntryCreate, owner_id: str = Depends(verify_token)) -> Entry:
        entry = store.create_entry(owner_id, body)
        logger.info(f"Created {entry.type.value} entry {entry.id}")
        return entry

    @router.patch("/entries/{entry_id}")
    async def update_entry(
        entry_id: str, body: EntryUpdate, owner_id: str = Depends(verify_token)
    ) -> Entry:
        return store.update_entry(owner_id, entry_id, body)

    @router.delete("/entries/{entry_id}")
    async def delete_entry(entry_id: str, owner_id: str = Depends(verify_token)) -> bool:
        return store.delete_entry(owner_id, entry_id)

    @router.get("/tags")
    async def list_tags(_: str = Depends(verify_token)) -> List[Tag]:
        return store.list_tags()

    @router.post("/tags", status_code=201)
    async def create_tag(body: TagCreate, _: str = Depends(verify_token)) -> Tag:
        return store.create_tag(body.name, body.color)

    @router.get("/relationships")
    async def list_relationships(owner_id: str = Depends(verify_token)) -> List[Relationship]:
        return store.list_relationships(owner_id)

    @router.post("/relationships", status_code=201)
    async def create_relationship(
        body: RelationshipCreate, owner_id: str = Depends(verify_token)
    ) -> Relationship:
        return store.create_relationship(owner_id, body)

    @router.delete("/relationships/{relationship_id}")
    async def delete_relationship(
        relationship_id: str, owner_id: str = Depends(verify_token)
    ) -> bool:
        return store.delete_relationship(owner_id, relationship_id)

    @router.get("/export")
    async def export(
        format: Literal["json", "markdown"] = "json",
        owner_id: str = Depends(verify_token),
    ):
        now = datetime.now(timezone.utc)
        entries = store.list_entries(owner_id)
        relationships = store.list_relationships(owner_id)
        filename = f"knowledge-vault-export-{now.date().isoformat()}"
        if format == "markdown":
            return Response(
                content=export_markdown(entries, relationships, now),
                media_type="text/markdown",
                headers={"Content-Disposition": f'attachment; filename="{filename}.md"'},
            )
        return export_json(entries, relationships, now)

    return router
