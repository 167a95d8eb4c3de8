from fastapi.testclient import TestClient

from notetree.api.endpoints import format_event
from notetree.domain.events import InvalidationEvent
from tests.fakes import FakeBackingStore


def test_health(test_client: TestClient) -> None:
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_note_endpoint_returns_note_with_capabilities(test_client: TestClient) -> None:
    response = test_client.get("/api/notes/c")
    assert response.status_code == 200

    data = response.json()
    assert data["title"] == "Gamma notes"
    assert data["type"] == "code"
    assert data["is_read_only"] is False
    assert data["capabilities"] == ["edit_source", "preview"]


def test_note_endpoint_not_found(test_client: TestClient) -> None:
    response = test_client.get("/api/notes/ghost")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NoteNotFound"


def test_note_endpoint_store_failure_is_retryable(
    test_client: TestClient, fake_backing_store: FakeBackingStore
) -> None:
    fake_backing_store.failing.add("b")
    response = test_client.get("/api/notes/b")
    assert response.status_code == 503
    assert response.headers["retry-after"] == "1"


def test_children_endpoint(test_client: TestClient) -> None:
    response = test_client.get("/api/notes/q/children")
    assert response.status_code == 200
    assert response.json() == [
        {
            "id": "b_n1_q",
            "note_id": "n1",
            "parent_note_id": "q",
            "position": 10,
            "prefix": "Ref",
            "is_expanded": False,
        }
    ]

    assert test_client.get("/api/notes/a/children").json() == []
    assert test_client.get("/api/notes/ghost/children").status_code == 404


def test_paths_endpoint(test_client: TestClient) -> None:
    data = test_client.get("/api/notes/n1/paths").json()
    assert data == {"note_id": "n1", "is_orphan": False, "paths": ["root/p1/n1", "root/q/n1"]}

    data = test_client.get("/api/notes/o/paths").json()
    assert data == {"note_id": "o", "is_orphan": True, "paths": []}


def test_relocate_endpoint_reports_per_item(test_client: TestClient) -> None:
    response = test_client.post(
        "/api/relocate",
        json={
            "selections": [
                {"note_id": "b", "source_branch_id": "b_b"},
                {"note_id": "p1", "source_branch_id": "b_p1"},
                {"note_id": "c"},
            ],
            "destination_path": "root/p1/p2",
        },
    )
    assert response.status_code == 200

    data = response.json()
    assert data["target_note_id"] == "p2"
    assert [r["status"] for r in data["results"]] == ["moved", "skipped:CycleDetected", "cloned"]
    assert data["message"].startswith("Selected notes have been moved into Planning")

    children = test_client.get("/api/notes/p2/children").json()
    assert [c["note_id"] for c in children] == ["a", "b", "c"]


def test_relocate_endpoint_unknown_destination(test_client: TestClient) -> None:
    response = test_client.post(
        "/api/relocate",
        json={"selections": [{"note_id": "b"}], "destination_path": "root/nowhere"},
    )
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "PathNotFound"


def test_relocate_endpoint_validates_body(test_client: TestClient) -> None:
    response = test_client.post("/api/relocate", json={"destination_path": "root"})
    assert response.status_code == 422


def test_autocomplete_endpoint(test_client: TestClient) -> None:
    response = test_client.get("/api/autocomplete?query=queue&marker=@")
    assert response.status_code == 200
    assert response.json() == [{"id": "@Queue", "text": "Queue", "link": "#root/q"}]


def test_autocomplete_endpoint_no_results_is_empty_list(test_client: TestClient) -> None:
    response = test_client.get("/api/autocomplete?query=nothing here")
    assert response.status_code == 200
    assert response.json() == []


def test_search_endpoint(test_client: TestClient) -> None:
    data = test_client.get("/api/notes/search?query=shared").json()
    assert [c["note_id"] for c in data] == ["n1"]
    assert test_client.get("/api/notes/search").status_code == 422
    assert test_client.get("/api/notes/search?query=e&limit=0").status_code == 422
    assert test_client.get("/api/notes/search?query=e&limit=-1").status_code == 422
    assert len(test_client.get("/api/notes/search?query=e&limit=1").json()) == 1


def test_create_and_delete_branch(test_client: TestClient) -> None:
    response = test_client.post(
        "/api/branches", json={"note_id": "o", "parent_note_id": "q", "prefix": "Draft"}
    )
    assert response.status_code == 201
    branch = response.json()
    assert branch["prefix"] == "Draft"

    assert test_client.get("/api/notes/o/paths").json()["paths"] == ["root/q/o"]

    response = test_client.delete(f"/api/branches/{branch['id']}")
    assert response.status_code == 200
    assert response.json() == {"branch_id": branch["id"], "is_orphan": True}


def test_create_branch_conflicts(test_client: TestClient) -> None:
    response = test_client.post("/api/branches", json={"note_id": "n1", "parent_note_id": "q"})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "DuplicateEdge"

    response = test_client.post("/api/branches", json={"note_id": "p1", "parent_note_id": "a"})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "CycleDetected"


def test_delete_unknown_branch(test_client: TestClient) -> None:
    assert test_client.delete("/api/branches/nope").status_code == 404


def test_reorder_endpoint(test_client: TestClient) -> None:
    response = test_client.put(
        "/api/notes/root/children/order", json={"branch_ids": ["b_c", "b_b", "b_q", "b_p1"]}
    )
    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == ["b_c", "b_b", "b_q", "b_p1"]

    response = test_client.put("/api/notes/root/children/order", json={"branch_ids": ["b_a"]})
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "UnknownBranch"


def test_prefix_endpoint(test_client: TestClient) -> None:
    response = test_client.put("/api/branches/b_b/prefix", json={"prefix": "v2"})
    assert response.status_code == 200
    assert response.json()["prefix"] == "v2"


def test_format_event() -> None:
    assert format_event(InvalidationEvent(note_id="x")) == (
        'event: invalidate\ndata: {"note_id":"x"}\n\n'
    )
    assert format_event(InvalidationEvent(parent_note_id="p")) == (
        'event: invalidate\ndata: {"parent_note_id":"p"}\n\n'
    )
