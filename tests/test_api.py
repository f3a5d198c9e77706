"""
Tests for the FastAPI endpoints.
"""

import pytest
import asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from quizflow.main import app
from quizflow.api.dependencies import get_projector_storage, get_session_storage, get_store
from quizflow.storage.memory import InMemoryFlowStore, ProjectorStorage, SessionStorage
from quizflow.workflows.product_finder import seed_demo_flows


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def store():
    return InMemoryFlowStore()


@pytest.fixture
def client(store):
    """Test client on fresh storage; the lifespan seeds the demo flows."""
    sessions = SessionStorage()
    projectors = ProjectorStorage()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_session_storage] = lambda: sessions
    app.dependency_overrides[get_projector_storage] = lambda: projectors

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def category_by_slug(client, slug):
    categories = client.get("/categories/").json()["categories"]
    return next(c for c in categories if c["slug"] == slug)


def start(client, slug="laptop", strategy=None):
    body = {"strategy": strategy} if strategy else None
    response = client.post(f"/flow/{slug}/sessions", json=body)
    assert response.status_code == 201
    return response.json()


def select(client, session, index=0):
    option_id = session["options"][index]["id"]
    response = client.post(
        f"/flow/sessions/{session['session_id']}/select",
        json={"option_id": option_id},
    )
    assert response.status_code == 200
    return response.json()


class TestRootEndpoints:
    """Tests for root endpoints."""

    def test_root(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "QuizFlow"
        assert "version" in data
        assert "endpoints" in data

    def test_health(self, client):
        """Test health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["store_backend"] == "memory"
        assert data["categories_count"] == 3
        assert data["sessions_count"] == 0


class TestCategoryEndpoints:
    """Tests for category endpoints."""

    def test_list_seeded_categories(self, client):
        response = client.get("/categories/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 3
        by_slug = {c["slug"]: c for c in data["categories"]}
        assert by_slug["laptop"]["icon"] == "laptop"
        assert by_slug["tv"]["icon"] == "monitor"
        assert by_slug["ac"]["icon"] == "wind"
        assert by_slug["laptop"]["tagline"] == "Find the perfect laptop"
        assert by_slug["laptop"]["flow_path"] == "/flow/laptop"

    def test_create_category(self, client):
        response = client.post("/categories/", json={"name": "  Smart Watch ", "slug": " Smart-Watch "})
        assert response.status_code == 201

        data = response.json()
        assert data["name"] == "Smart Watch"
        assert data["slug"] == "smart-watch"
        assert data["icon"] is None
        assert data["tagline"] == "Find the perfect smart watch"
        assert client.get("/categories/").json()["total"] == 4

    def test_duplicate_slug(self, client):
        """A taken slug is a conflict."""
        response = client.post("/categories/", json={"name": "Laptops", "slug": "laptop"})
        assert response.status_code == 409
        assert "laptop" in response.json()["error"]

    @pytest.mark.parametrize("slug", ["has space", "trailing-", "double--hyphen", "under_score"])
    def test_invalid_slug(self, client, slug):
        response = client.post("/categories/", json={"name": "Bad", "slug": slug})
        assert response.status_code == 422


class TestFlowEndpoints:
    """Tests for walking a questionnaire."""

    def test_start_session(self, client):
        session = start(client)

        assert session["status"] == "awaiting_selection"
        assert session["strategy"] == "linear"
        assert session["category"]["slug"] == "laptop"
        assert session["current_index"] == 0
        assert session["total_steps"] == 4
        assert session["current_step"]["order_index"] == 0
        assert [o["title"] for o in session["options"]] == ["Work", "Gaming", "Study"]
        assert session["can_go_back"] is False

    def test_start_unknown_slug(self, client):
        response = client.post("/flow/fridge/sessions")
        assert response.status_code == 404
        assert response.json()["error"] == "Category 'fridge' not found"

    def test_linear_walk_to_completion(self, client):
        """Every step is visited in order and completion lists all selections."""
        session = start(client, "tv")
        first_step = session["current_step"]["id"]
        first_option = session["options"][0]["id"]

        session = select(client, session, 0)
        assert session["current_index"] == 1
        assert session["transition"]["type"] == "advanced"
        assert session["can_go_back"] is True
        second_step = session["current_step"]["id"]
        second_option = session["options"][2]["id"]

        session = select(client, session, 2)
        assert session["status"] == "completed"
        assert session["transition"]["type"] == "completed"
        assert session["transition"]["selections"] == {
            first_step: first_option,
            second_step: second_option,
        }
        assert session["can_go_back"] is False

    def test_select_after_completion_is_noop(self, client):
        session = start(client, "ac")
        option_id = session["options"][0]["id"]
        session = select(client, session, 0)
        session = select(client, session, 0)
        assert session["status"] == "completed"

        response = client.post(
            f"/flow/sessions/{session['session_id']}/select",
            json={"option_id": option_id},
        )
        assert response.status_code == 200
        assert response.json()["transition"] is None
        assert response.json()["selections"] == session["selections"]

    def test_linear_gaming_does_not_jump(self, client):
        session = start(client)
        session = select(client, session, 1)

        assert session["current_index"] == 1
        assert session["transition"]["type"] == "advanced"

    def test_conditional_gaming_jumps_to_graphics(self, client):
        session = start(client, strategy="conditional")
        assert session["strategy"] == "conditional"

        session = select(client, session, 1)

        assert session["transition"]["type"] == "jumped"
        assert session["current_index"] == 3
        assert session["current_step"]["is_conditional"] is True
        assert [o["title"] for o in session["options"]] == ["Indie and esports", "AAA at high settings"]

        response = client.post(f"/flow/sessions/{session['session_id']}/previous")
        assert response.json()["current_index"] == 0

    def test_previous(self, client):
        session = start(client)
        session_id = session["session_id"]

        # No-op on the first step
        response = client.post(f"/flow/sessions/{session_id}/previous")
        assert response.status_code == 200
        assert response.json()["current_index"] == 0

        session = select(client, session, 2)
        response = client.post(f"/flow/sessions/{session_id}/previous")
        data = response.json()
        assert data["current_index"] == 0
        assert len(data["options"]) == 3
        assert data["selections"] == session["selections"]

    def test_get_and_delete_session(self, client):
        session = start(client)
        session_id = session["session_id"]

        response = client.get(f"/flow/sessions/{session_id}")
        assert response.status_code == 200
        assert response.json()["session_id"] == session_id

        assert client.delete(f"/flow/sessions/{session_id}").status_code == 204
        assert client.get(f"/flow/sessions/{session_id}").status_code == 404
        assert client.delete(f"/flow/sessions/{session_id}").status_code == 404

    def test_unknown_session(self, client):
        response = client.post("/flow/sessions/missing/select", json={"option_id": "x"})
        assert response.status_code == 404

    def test_empty_category(self, client):
        """A category without steps starts fine and ignores selections."""
        client.post("/categories/", json={"name": "Fridge", "slug": "fridge"})
        session = start(client, "fridge")

        assert session["total_steps"] == 0
        assert session["current_step"] is None
        assert session["options"] == []

        response = client.post(
            f"/flow/sessions/{session['session_id']}/select",
            json={"option_id": "anything"},
        )
        assert response.status_code == 200
        assert response.json()["transition"] is None
        assert response.json()["current_index"] == 0


class TestBuilderEndpoints:
    """Tests for the graph builder."""

    def test_graph(self, client):
        laptop = category_by_slug(client, "laptop")

        response = client.get(f"/builder/{laptop['id']}/graph")
        assert response.status_code == 200

        data = response.json()
        assert len(data["nodes"]) == 4
        assert [n["position"]["x"] for n in data["nodes"]] == [0, 300, 600, 900]
        assert len(data["edges"]) == 1
        edge = data["edges"][0]
        assert edge["target"] == data["nodes"][3]["id"]
        assert edge["source_node"] == data["nodes"][0]["id"]
        assert edge["type"] == "smoothstep"
        assert edge["animated"] is True
        assert data["mermaid_diagram"].startswith("graph LR")

    def test_graph_unknown_category(self, client):
        response = client.get("/builder/missing/graph")
        assert response.status_code == 404

    def test_connect(self, client):
        tv = category_by_slug(client, "tv")
        graph = client.get(f"/builder/{tv['id']}/graph").json()
        option_id = graph["nodes"][0]["data"]["options"][0]["id"]
        target = graph["nodes"][1]["id"]

        response = client.post(
            f"/builder/{tv['id']}/connect",
            json={"source_handle": option_id, "target": target},
        )
        assert response.status_code == 200
        edges = response.json()["edges"]
        assert len(edges) == 1
        assert edges[0]["id"] == f"reactflow__edge-{option_id}-{target}"

        # Drawing it again keeps one edge, and a refresh keeps the local edge
        client.post(f"/builder/{tv['id']}/connect", json={"source_handle": option_id, "target": target})
        refreshed = client.get(f"/builder/{tv['id']}/graph", params={"refresh": True}).json()
        assert len(refreshed["edges"]) == 1

    def test_authoring(self, client):
        category = client.post("/categories/", json={"name": "Phone", "slug": "phone"}).json()
        base = f"/builder/{category['id']}"
        assert client.get(f"{base}/graph").json()["nodes"] == []

        first = client.post(f"{base}/steps", json={"title": "Budget"})
        assert first.status_code == 201
        assert first.json()["order_index"] == 0
        second = client.post(f"{base}/steps", json={"title": "Camera"}).json()
        assert second["order_index"] == 1

        option = client.post(f"{base}/steps/{first.json()['id']}/options", json={"title": "Cheap"})
        assert option.status_code == 201

        condition = client.post(
            f"{base}/conditions",
            json={"option_id": option.json()["id"], "next_step_id": second["id"]},
        )
        assert condition.status_code == 201

        graph = client.get(f"{base}/graph").json()
        assert len(graph["nodes"]) == 2
        assert [e["id"] for e in graph["edges"]] == [condition.json()["id"]]

    def test_duplicate_order_index(self, client):
        category = client.post("/categories/", json={"name": "Phone", "slug": "phone"}).json()
        base = f"/builder/{category['id']}"
        client.post(f"{base}/steps", json={"title": "Budget", "order_index": 2})

        response = client.post(f"{base}/steps", json={"title": "Camera", "order_index": 2})
        assert response.status_code == 409

    def test_option_for_step_of_other_category(self, client):
        laptop = category_by_slug(client, "laptop")
        tv = category_by_slug(client, "tv")
        tv_step = client.get(f"/builder/{tv['id']}/graph").json()["nodes"][0]["id"]

        response = client.post(f"/builder/{laptop['id']}/steps/{tv_step}/options", json={"title": "x"})
        assert response.status_code == 404

    def test_condition_across_categories(self, client):
        """A condition may not point into another category."""
        laptop = category_by_slug(client, "laptop")
        tv = category_by_slug(client, "tv")
        laptop_graph = client.get(f"/builder/{laptop['id']}/graph").json()
        tv_graph = client.get(f"/builder/{tv['id']}/graph").json()
        option_id = laptop_graph["nodes"][0]["data"]["options"][0]["id"]

        response = client.post(
            f"/builder/{laptop['id']}/conditions",
            json={"option_id": option_id, "next_step_id": tv_graph["nodes"][0]["id"]},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "Condition target outside category"

        # Same check when the target belongs to the addressed category but the option does not
        response = client.post(
            f"/builder/{tv['id']}/conditions",
            json={"option_id": option_id, "next_step_id": tv_graph["nodes"][1]["id"]},
        )
        assert response.status_code == 422


# ============================================================
# Async Test Client
# ============================================================

class SlowOptionsStore(InMemoryFlowStore):
    """Store whose option reads take a moment, so requests overlap."""

    delay = 0.05

    async def list_options(self, step_id):
        await asyncio.sleep(self.delay)
        return await super().list_options(step_id)


class TestAsyncEndpoints:
    """Async tests using httpx."""

    @pytest.mark.asyncio
    async def test_async_walk(self):
        """Walk the laptop questionnaire over an async client."""
        store = InMemoryFlowStore()
        await seed_demo_flows(store)
        sessions = SessionStorage()
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_session_storage] = lambda: sessions

        try:
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.post("/flow/laptop/sessions")
                assert response.status_code == 201
                session = response.json()

                for _ in range(session["total_steps"]):
                    response = await ac.post(
                        f"/flow/sessions/{session['session_id']}/select",
                        json={"option_id": session["options"][0]["id"]},
                    )
                    session = response.json()

                assert session["status"] == "completed"
                assert len(session["transition"]["selections"]) == 4
                assert len(sessions) == 1
        finally:
            app.dependency_overrides.clear()

    @pytest.mark.asyncio
    async def test_overlapping_selects_apply_in_turn(self):
        """A second select sent while the first is loading options is not lost."""
        store = SlowOptionsStore()
        await seed_demo_flows(store)
        sessions = SessionStorage()
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_session_storage] = lambda: sessions

        try:
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                session = (await ac.post("/flow/laptop/sessions")).json()
                session_id = session["session_id"]
                first_step = session["current_step"]["id"]
                work, gaming = session["options"][0]["id"], session["options"][1]["id"]
                url = f"/flow/sessions/{session_id}/select"

                async def select_later(option_id, delay):
                    await asyncio.sleep(delay)
                    return await ac.post(url, json={"option_id": option_id})

                responses = await asyncio.gather(
                    ac.post(url, json={"option_id": work}),
                    select_later(gaming, 0.01),
                )

                assert all(r.status_code == 200 for r in responses)
                assert [r.json()["current_index"] for r in responses] == [1, 2]
                assert all(r.json()["transition"]["type"] == "advanced" for r in responses)

                final = (await ac.get(f"/flow/sessions/{session_id}")).json()
                assert final["current_index"] == 2
                assert len(final["selections"]) == 2
                assert final["selections"][first_step] == work
                assert len(final["options"]) == 3
        finally:
            app.dependency_overrides.clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
