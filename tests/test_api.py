import inspect

from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from kvault.api import create_app
from kvault.domain.user import AuthPayload
from kvault.graph_stores.local_store import LocalGraphStore
from kvault.identity.local import LocalIdentityProvider
from tests.fakes import FakeIdentityProvider


def create_entry(client: TestClient, headers: dict[str, str], **overrides) -> dict:
    body = {"title": "React Hooks", "content": "useState and useEffect", "type": "ARTICLE"}
    body.update(overrides)
    response = client.post("/api/entries", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(test_client: TestClient) -> None:
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_token_are_rejected(test_client: TestClient) -> None:
    response = test_client.get("/api/entries")

    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required", "code": "UNAUTHENTICATED"}
    assert response.headers["www-authenticate"] == "Bearer"


def test_invalid_token_is_rejected(test_client: TestClient) -> None:
    response = test_client.get("/api/graph", headers={"Authorization": "Bearer bogus"})

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"


def test_signup_login_and_me(test_client: TestClient) -> None:
    signup = test_client.post(
        "/api/auth/signup",
        json={"email": "carol@example.com", "password": "secret", "name": "Carol"},
    )
    assert signup.status_code == 200
    token = signup.json()["token"]

    duplicate = test_client.post(
        "/api/auth/signup", json={"email": "carol@example.com", "password": "other"}
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"

    wrong = test_client.post(
        "/api/auth/login", json={"email": "carol@example.com", "password": "wrong"}
    )
    assert wrong.status_code == 401

    login = test_client.post(
        "/api/auth/login", json={"email": "carol@example.com", "password": "secret"}
    )
    assert login.status_code == 200

    me = test_client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["name"] == "Carol"


def test_entry_crud(test_client: TestClient, auth_headers: dict[str, str]) -> None:
    created = create_entry(test_client, auth_headers, tag_names=["react", "hooks"])
    entry_id = created["id"]
    assert [tag["name"] for tag in created["tags"]] == ["react", "hooks"]

    fetched = test_client.get(f"/api/entries/{entry_id}", headers=auth_headers)
    assert fetched.json() == created

    updated = test_client.patch(
        f"/api/entries/{entry_id}",
        json={"title": "Hooks in depth", "tag_names": ["react"]},
        headers=auth_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["title"] == "Hooks in depth"
    assert [tag["name"] for tag in updated.json()["tags"]] == ["react"]

    deleted = test_client.delete(f"/api/entries/{entry_id}", headers=auth_headers)
    assert deleted.json() is True

    missing = test_client.get(f"/api/entries/{entry_id}", headers=auth_headers)
    assert missing.status_code == 404


def test_entry_validation(test_client: TestClient, auth_headers: dict[str, str]) -> None:
    bad_type = test_client.post(
        "/api/entries",
        json={"title": "Video", "content": "", "type": "VIDEO"},
        headers=auth_headers,
    )
    assert bad_type.status_code == 422

    blank_title = test_client.post(
        "/api/entries",
        json={"title": "  ", "content": "", "type": "ARTICLE"},
        headers=auth_headers,
    )
    assert blank_title.status_code == 422
    assert blank_title.json()["code"] == "VALIDATION_ERROR"


def test_list_entries_with_filters(test_client: TestClient, auth_headers: dict[str, str]) -> None:
    hooks = create_entry(test_client, auth_headers, tag_names=["react"])
    create_entry(
        test_client,
        auth_headers,
        title="useApi",
        content="function useApi() {}",
        type="CODE_SNIPPET",
        language="javascript",
        tag_names=["react"],
    )
    docs = create_entry(
        test_client,
        auth_headers,
        title="Next.js Docs",
        content="Guides",
        type="BOOKMARK",
        url="https://nextjs.org/docs",
    )

    response = test_client.get(
        "/api/entries",
        params={"type": ["ARTICLE", "BOOKMARK"]},
        headers=auth_headers,
    )
    assert [entry["id"] for entry in response.json()] == [docs["id"], hooks["id"]]

    response = test_client.get(
        "/api/entries",
        params={"search": "USEEFFECT", "tag_names": "react"},
        headers=auth_headers,
    )
    assert [entry["id"] for entry in response.json()] == [hooks["id"]]


def test_entries_of_other_owners_are_hidden(
    test_client: TestClient, auth_headers: dict[str, str], bob: AuthPayload
) -> None:
    created = create_entry(test_client, auth_headers)
    bob_headers = {"Authorization": f"Bearer {bob.token}"}

    assert test_client.get("/api/entries", headers=bob_headers).json() == []
    response = test_client.patch(
        f"/api/entries/{created['id']}", json={"title": "Mine now"}, headers=bob_headers
    )
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_tags(test_client: TestClient, auth_headers: dict[str, str]) -> None:
    response = test_client.post(
        "/api/tags", json={"name": "react", "color": "#61dafb"}, headers=auth_headers
    )
    assert response.status_code == 201

    tags = test_client.get("/api/tags", headers=auth_headers).json()
    assert [(tag["name"], tag["color"]) for tag in tags] == [("react", "#61dafb")]


def test_relationships(
    test_client: TestClient, auth_headers: dict[str, str], bob: AuthPayload
) -> None:
    source = create_entry(test_client, auth_headers, title="Source")
    target = create_entry(test_client, auth_headers, title="Target")
    body = {
        "from_entry_id": source["id"],
        "to_entry_id": target["id"],
        "type": "SOURCE_FOR",
        "description": "Background reading",
    }

    created = test_client.post("/api/relationships", json=body, headers=auth_headers)
    assert created.status_code == 201
    rel = created.json()
    assert rel["type"] == "SOURCE_FOR"

    listed = test_client.get("/api/relationships", headers=auth_headers).json()
    assert [item["id"] for item in listed] == [rel["id"]]

    bob_headers = {"Authorization": f"Bearer {bob.token}"}
    foreign = test_client.post("/api/relationships", json=body, headers=bob_headers)
    assert foreign.status_code == 404

    bad_type = test_client.post(
        "/api/relationships", json={**body, "type": "LIKES"}, headers=auth_headers
    )
    assert bad_type.status_code == 422

    deleted = test_client.delete(f"/api/relationships/{rel['id']}", headers=auth_headers)
    assert deleted.json() is True
    assert test_client.get("/api/relationships", headers=auth_headers).json() == []


def test_graph_scene(test_client: TestClient, auth_headers: dict[str, str]) -> None:
    hooks = create_entry(test_client, auth_headers, tag_names=["react"])
    typescript = create_entry(test_client, auth_headers, title="TypeScript", content="Generics")
    test_client.post(
        "/api/relationships",
        json={
            "from_entry_id": hooks["id"],
            "to_entry_id": typescript["id"],
            "type": "RELATED_TO",
        },
        headers=auth_headers,
    )

    response = test_client.get(
        "/api/graph",
        params={"highlight": "react", "width": 1000, "height": 700, "seed": 1},
        headers=auth_headers,
    )

    assert response.status_code == 200
    scene = response.json()
    assert scene["canvas"] == {"width": 1000, "height": 700}
    assert scene["stats"] == {"nodes": 2, "links": 1, "matched": 1}
    ringed = [node["id"] for node in scene["nodes"] if node["stroke_width"] == 3]
    assert ringed == [hooks["id"]]
    (edge,) = scene["edges"]
    assert (edge["source"], edge["target"]) == (hooks["id"], typescript["id"])


def test_graph_scene_filters_entries(
    test_client: TestClient, auth_headers: dict[str, str]
) -> None:
    create_entry(test_client, auth_headers, tag_names=["react"])
    create_entry(test_client, auth_headers, title="Docs", type="BOOKMARK")

    response = test_client.get("/api/graph", params={"type": "BOOKMARK"}, headers=auth_headers)

    scene = response.json()
    assert [label["text"] for label in scene["labels"]] == ["Docs"]
    assert scene["stats"]["nodes"] == 1
    assert scene["canvas"] == {"width": 800, "height": 600}


def test_export(test_client: TestClient, auth_headers: dict[str, str]) -> None:
    create_entry(test_client, auth_headers, tag_names=["react"])

    as_json = test_client.get("/api/export", headers=auth_headers)
    assert as_json.status_code == 200
    assert as_json.json()["version"] == "1.0"
    assert [entry["title"] for entry in as_json.json()["entries"]] == ["React Hooks"]

    as_markdown = test_client.get(
        "/api/export", params={"format": "markdown"}, headers=auth_headers
    )
    assert as_markdown.headers["content-type"].startswith("text/markdown")
    assert "attachment" in as_markdown.headers["content-disposition"]
    assert as_markdown.text.startswith("# Knowledge Vault Export")

    unknown = test_client.get("/api/export", params={"format": "pdf"}, headers=auth_headers)
    assert unknown.status_code == 422


def test_local_identity_end_to_end(store: LocalGraphStore) -> None:
    identity = LocalIdentityProvider(secret="test-secret", max_age_seconds=3600)
    client = TestClient(create_app(store=store, identity=identity))

    token = client.post(
        "/api/auth/signup", json={"email": "dave@example.com", "password": "pw"}
    ).json()["token"]
    headers = {"Authorization": f"Bearer {token}"}
    create_entry(client, headers)

    assert len(client.get("/api/entries", headers=headers).json()) == 1
    assert client.get("/api/me", headers=headers).json()["email"] == "dave@example.com"


def test_missing_records_use_error_contract(
    test_client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = test_client.get("/api/entries/nope", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"detail": "Entry nope not found", "code": "NOT_FOUND"}


def test_me_for_removed_user_uses_error_contract(store: LocalGraphStore) -> None:
    class RemovedUsers(FakeIdentityProvider):
        def get_user(self, user_id: str) -> None:
            return None

    identity = RemovedUsers()
    auth = identity.signup("erin@example.com", "pw")
    client = TestClient(create_app(store=store, identity=identity))

    response = client.get("/api/me", headers={"Authorization": f"Bearer {auth.token}"})

    assert response.status_code == 404
    assert response.json() == {"detail": f"User {auth.user.id} not found", "code": "NOT_FOUND"}


def test_graph_layout_runs_off_the_event_loop(test_client: TestClient) -> None:
    (route,) = [
        route
        for route in test_client.app.routes
        if isinstance(route, APIRoute) and route.path == "/api/graph"
    ]

    assert not inspect.iscoroutinefunction(route.endpoint)
