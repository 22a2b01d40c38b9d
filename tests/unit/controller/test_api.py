"""End-to-end tests of the HTTP surface with fake upstream services."""

import json

import pytest
from fastapi.testclient import TestClient

from imagestudio.controller.main_controller import app
from imagestudio.handlers.error_handler import ConfigurationError, TransportError
from imagestudio.models.generate import GeneratedImage
from imagestudio.services.auth_service.auth import hash_password
from imagestudio.services.image_generation_service.batcher import RequestBatcher
from imagestudio.services.image_generation_service.generate import Generation
from imagestudio.services.image_generation_service.main import ImageGeneration
from imagestudio.services.stats_service.main import StatsService
from imagestudio.services.stats_service.stats_store import InMemoryStatsStore


class FakeClient:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.closed = False

    async def generate_text(self, prompt, n, size, style, negative_prompt=None):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return [GeneratedImage(b64_json=f"{prompt}-{i}") for i in range(n)]

    async def edit_images(self, prompt, images, n, size, style, negative_prompt=None):
        return await self.generate_text(prompt, n, size, style, negative_prompt)

    async def aclose(self):
        self.closed = True


class FakeEnhancer:
    def __init__(self, result="", error=None):
        self.result = result
        self.error = error

    async def enhance(self, prompt):
        if self.error is not None:
            raise self.error
        return self.result


async def no_sleep(seconds):
    return None


@pytest.fixture
def store():
    return InMemoryStatsStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[StatsService.get_stats_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def use_generation(outcomes, max_per_request=4):
    fake = FakeClient(outcomes)
    batcher = RequestBatcher(max_per_request=max_per_request, sleep=no_sleep)
    app.dependency_overrides[ImageGeneration.get_image_generation] = lambda: Generation(
        client=fake, batcher=batcher
    )
    return fake


def use_enhancer(enhancer):
    app.dependency_overrides[ImageGeneration.get_prompt_enhancer] = lambda: enhancer


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_options_lists_form_values(client):
    body = client.get("/api/image/options").json()

    assert body["sizes"] == ["portrait", "landscape"]
    assert "3d-model" in body["styles"]
    assert body["count"] == {"min": 1, "max": 4, "default": 2}


class TestGenerate:
    def test_success_returns_all_images(self, client):
        fake = use_generation([None, None], max_per_request=2)

        response = client.post("/api/image/generate", json={"prompt": "cat", "count": 4})

        assert response.status_code == 200
        body = response.json()
        assert [i["b64_json"] for i in body["images"]] == ["cat-0", "cat-1", "cat-0", "cat-1"]
        assert body["error"] is None
        assert fake.closed

    def test_empty_prompt_is_bad_request(self, client):
        fake = use_generation([])

        response = client.post("/api/image/generate", json={"prompt": "  "})

        assert response.status_code == 400
        assert response.json()["error"]["category"] == "validation"
        assert fake.outcomes == []

    @pytest.mark.parametrize("count", [None, "abc"])
    def test_non_integer_count_is_rejected(self, client, count):
        fake = use_generation([None])

        response = client.post("/api/image/generate", json={"prompt": "cat", "count": count})

        assert response.status_code == 422
        assert fake.outcomes == [None]

    def test_partial_failure_returns_earlier_images(self, client):
        use_generation([None, TransportError()], max_per_request=1)

        response = client.post("/api/image/generate", json={"prompt": "cat", "count": 2})

        assert response.status_code == 503
        body = response.json()
        assert len(body["images"]) == 1
        assert body["error"]["category"] == "network_unreachable"

    def test_stream_is_ndjson(self, client):
        use_generation([None, None], max_per_request=1)

        response = client.post("/api/image/generate/stream", json={"prompt": "cat", "count": 2})

        assert response.headers["content-type"].startswith("application/x-ndjson")
        events = [json.loads(line) for line in response.text.splitlines() if line]
        assert events[0]["event"] == "state"
        assert events[-1] == {"event": "done", "data": {"count": 2}}


class TestEnhance:
    def test_returns_enhanced_prompt(self, client):
        use_enhancer(FakeEnhancer(result="a vivid cat"))

        response = client.post("/api/image/enhance", json={"prompt": "cat"})

        assert response.status_code == 200
        assert response.json() == {"prompt": "a vivid cat"}

    def test_missing_key_is_not_configured(self, client):
        use_enhancer(FakeEnhancer(error=ConfigurationError("Gemini API key not found.")))

        response = client.post("/api/image/enhance", json={"prompt": "cat"})

        assert response.status_code == 500
        assert response.json()["error_type"] == "not_configured"

    def test_unreachable_api_is_network_error(self, client):
        use_enhancer(FakeEnhancer(error=TransportError()))

        response = client.post("/api/image/enhance", json={"prompt": "cat"})

        assert response.status_code == 503
        assert response.json()["error_type"] == "network_unreachable"


class TestStats:
    def test_view_and_image_counters(self, client, store):
        client.get("/api/stats/view")
        client.post("/api/stats/image")
        client.post("/api/stats/image", json={"count": 3})

        record = store.read()
        assert record.page_views == 1
        assert record.images_generated == 4

    def test_invalid_count_counts_one(self, client, store):
        response = client.post("/api/stats/image", json={"count": "many"})

        assert response.json() == {"success": True}
        assert store.read().images_generated == 1


class TestAdmin:
    @pytest.fixture(autouse=True)
    def password(self, monkeypatch):
        monkeypatch.setenv("ADMIN_PASSWORD_HASH", hash_password("hunter2"))

    def test_admin_routes_require_login(self, client):
        assert client.get("/api/admin/stats").status_code == 401
        assert client.get("/api/admin/settings").json() == {"detail": "Unauthorized"}

    def test_login_validation(self, client):
        assert client.post("/api/auth/login", json={}).status_code == 400
        assert client.post("/api/auth/login", json={"password": "nope"}).status_code == 401

    def test_login_grants_session(self, client, store, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        store.increment_views()

        assert client.post("/api/auth/login", json={"password": "hunter2"}).status_code == 200
        assert client.get("/api/auth/check").json() == {"isAuthenticated": True}

        stats = client.get("/api/admin/stats").json()
        assert stats["pageViews"] == 1
        assert client.get("/api/admin/settings").json() == {"geminiApiKey": "Not set"}

        client.post("/api/auth/logout")
        assert client.get("/api/auth/check").json() == {"isAuthenticated": False}
        assert client.get("/api/admin/stats").status_code == 401

    def test_key_is_masked(self, client, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "secret-key")
        client.post("/api/auth/login", json={"password": "hunter2"})

        assert client.get("/api/admin/settings").json() == {"geminiApiKey": "***SET***"}

    def test_unconfigured_password_is_server_error(self, client, monkeypatch):
        monkeypatch.delenv("ADMIN_PASSWORD_HASH")

        response = client.post("/api/auth/login", json={"password": "hunter2"})

        assert response.status_code == 500
