"""HTTP surface: /api/generate-spec, /api/templates, /api/ai-health, /health."""
import json

import pytest
from fastapi.testclient import TestClient

from specgen.api.generate import get_environment
from specgen.core.errors import LLMError
from specgen.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def use_env(make_env):
    def _use(chat_model, **kwargs):
        env = make_env(chat_model, **kwargs)
        app.dependency_overrides[get_environment] = lambda: env
        return env
    return _use


def bad_key():
    return LLMError("Incorrect API key provided: sk-secret", kind="invalid_api_key")


class TestGenerateSpec:
    def test_success(self, client, use_env, fake_chat, valid_spec_json, happy_request):
        use_env(fake_chat(valid_spec_json))
        res = client.post("/api/generate-spec", json=happy_request)
        assert res.status_code == 200
        body = res.json()
        assert body["meta"]["fallback"] is False
        assert body["meta"]["tokensUsed"] == 150
        assert body["specification"]["testing"]["requirementCoverage"]["coveragePercentage"] == 100

    def test_fallback_is_200(self, client, use_env, fake_chat, happy_request):
        use_env(fake_chat("not json at all"))
        res = client.post("/api/generate-spec", json=happy_request)
        assert res.status_code == 200
        assert res.json()["meta"]["fallback"] is True
        assert res.json()["meta"]["model"] == "fallback"

    def test_short_description(self, client, use_env, fake_chat, valid_spec_json):
        chat = fake_chat(valid_spec_json)
        use_env(chat)
        res = client.post("/api/generate-spec", json={"description": "short"})
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "description"
        assert chat.calls == []

    def test_bad_enum(self, client, use_env, fake_chat, valid_spec_json):
        use_env(fake_chat(valid_spec_json))
        res = client.post("/api/generate-spec", json={"description": "A long enough description",
                                                     "complexity": "huge"})
        assert res.status_code == 400
        assert res.json()["error"]["details"][0]["field"] == "complexity"

    def test_non_object_body(self, client, use_env, fake_chat, valid_spec_json):
        use_env(fake_chat(valid_spec_json))
        res = client.post("/api/generate-spec", json=["not", "an", "object"])
        assert res.status_code == 400

    def test_missing_body(self, client, use_env, fake_chat, valid_spec_json):
        use_env(fake_chat(valid_spec_json))
        res = client.post("/api/generate-spec")
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unavailable_without_fallback(self, client, use_env, fake_chat, happy_request):
        use_env(fake_chat(bad_key()), fallback_enabled=False)
        res = client.post("/api/generate-spec", json=happy_request)
        assert res.status_code == 502
        error = res.json()["error"]
        assert error["code"] == "LLM_UNAVAILABLE"
        assert error["requestId"].startswith("req_")
        assert "sk-secret" not in json.dumps(res.json())

    def test_invalid_response_without_fallback(self, client, use_env, fake_chat, happy_request):
        use_env(fake_chat("[]"), fallback_enabled=False)
        res = client.post("/api/generate-spec", json=happy_request)
        assert res.status_code == 502
        assert res.json()["error"]["code"] == "INVALID_RESPONSE"


class TestTemplates:
    def test_list(self, client):
        body = client.get("/api/templates").json()
        assert body["count"] == 7
        assert [t["id"] for t in body["templates"]][0] == "crud"
        assert "security" in body["filters"]["categories"]

    def test_search(self, client):
        body = client.get("/api/templates", params={"search": "payment"}).json()
        assert {t["id"] for t in body["templates"]} == {"ecommerce"}

    def test_filter(self, client):
        body = client.get("/api/templates", params={"complexity": "medium", "category": "analytics"}).json()
        assert [t["id"] for t in body["templates"]] == ["dashboard"]


class TestHealth:
    def test_liveness(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ai_health_closed(self, client, use_env, fake_chat, valid_spec_json):
        use_env(fake_chat(valid_spec_json))
        res = client.get("/api/ai-health")
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "healthy"
        assert body["model"] == "gpt-4o-mini"
        assert body["circuitBreaker"]["state"] == "CLOSED"

    def test_ai_health_open(self, client, use_env, fake_chat, happy_request):
        use_env(fake_chat(bad_key()), failure_threshold=1)
        client.post("/api/generate-spec", json=happy_request)
        res = client.get("/api/ai-health")
        assert res.status_code == 503
        body = res.json()
        assert body["status"] == "degraded"
        assert body["circuitBreaker"]["state"] == "OPEN"
        assert body["circuitBreaker"]["stats"]["circuitOpenCount"] == 1
