"""
Integration Tests for the Wardrobe AI Service
HTTP behaviour of the suggestion endpoint, health and metrics.
"""
from unittest.mock import patch

import pytest

from conftest import make_items
from wardrobe_service.core.errors import ConfigurationError, UpstreamError

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"


def assert_cors(response):
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-headers"] == ALLOWED_HEADERS


# ==================== HEALTH CHECK TESTS ====================

class TestHealthEndpoint:
    """Tests for /health and /metrics."""

    @pytest.fixture(autouse=True)
    def no_mongo(self):
        with patch("wardrobe_service.app.routes.mongo.health_check", return_value={"status": "disconnected"}):
            yield

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "1.0.0"
        assert "provider" in data["llm"]

    def test_health_hides_secrets(self, client, monkeypatch):
        monkeypatch.setenv("WARDROBE_LLM_API_KEY", "sk-very-secret")
        response = client.get("/health")
        assert "sk-very-secret" not in response.text

    def test_metrics_endpoint(self, client, items):
        client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})
        data = client.get("/metrics").json()

        assert data["total_requests"] == 1
        assert data["parsed_replies"] == 1


# ==================== SUGGESTION ENDPOINT TESTS ====================

class TestGenerateOutfitEndpoint:
    """Tests for /ai/generate-outfit."""

    def test_preflight(self, client):
        response = client.options("/ai/generate-outfit")
        assert response.status_code == 200
        assert response.content == b""
        assert_cors(response)

    @pytest.mark.parametrize("requested_headers", ["content-type, authorization", "x-requested-with"])
    def test_browser_preflight_answered_by_route(self, client, requested_headers):
        response = client.options("/ai/generate-outfit", headers={
            "Origin": "https://wardrobe.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": requested_headers,
        })

        assert response.status_code == 200
        assert response.content == b""
        assert_cors(response)
        assert "access-control-allow-methods" not in response.headers

    def test_browser_post_has_single_allow_origin(self, client, items):
        response = client.post(
            "/ai/generate-outfit",
            json={"items": items, "occasion": "Formal"},
            headers={"Origin": "https://wardrobe.example"},
        )

        assert response.status_code == 200
        assert response.headers.get_list("access-control-allow-origin") == ["*"]
        assert_cors(response)

    def test_catalog_preflight_still_handled(self, client):
        response = client.options("/ai/wardrobe/items", headers={
            "Origin": "https://wardrobe.example",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "authorization",
        })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "GET" in response.headers["access-control-allow-methods"]

    def test_success_returns_model_object(self, client, items):
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})

        assert response.status_code == 200
        assert response.json() == {
            "outfit": ["item-1", "item-2", "item-3"],
            "reasoning": "Sharp",
            "styling_tips": "Roll sleeves",
        }
        assert_cors(response)

    def test_plain_text_reply_falls_back(self, client, items, llm_client):
        llm_client.reply = "Wear the blazer with the trousers"
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})

        assert response.status_code == 200
        assert response.json() == {
            "outfit": ["item-1", "item-2", "item-3"],
            "reasoning": "Wear the blazer with the trousers",
            "styling_tips": "Mix and match these pieces for a great look!",
        }

    def test_too_few_items(self, client, llm_client):
        response = client.post("/ai/generate-outfit", json={"items": make_items(2), "occasion": "Formal"})

        assert response.status_code == 400
        assert response.json() == {"error": "At least 3 items are required"}
        assert llm_client.prompts == []
        assert_cors(response)

    def test_long_occasion(self, client, items):
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "x" * 51})
        assert response.status_code == 400
        assert "occasion" in response.json()["error"]

    def test_invalid_item(self, client, items):
        del items[0]["dress_code"]
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid item data structure"

    def test_malformed_json_body(self, client):
        response = client.post(
            "/ai/generate-outfit",
            content=b"{not json",
            headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert "error" in response.json()
        assert_cors(response)

    def test_missing_fields(self, client):
        response = client.post("/ai/generate-outfit", json={})
        assert response.status_code == 400

    def test_configuration_error_is_500(self, client, items, llm_client):
        llm_client.error = ConfigurationError("WARDROBE_LLM_API_KEY is not configured")
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})

        assert response.status_code == 500
        assert response.json() == {"error": "WARDROBE_LLM_API_KEY is not configured"}
        assert_cors(response)

    def test_upstream_error_is_500_with_message(self, client, items, llm_client):
        llm_client.error = UpstreamError("Gateway timeout")
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})

        assert response.status_code == 500
        assert response.json() == {"error": "Gateway timeout"}

    def test_unexpected_error_is_500(self, client, items, llm_client):
        llm_client.error = RuntimeError("boom")
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})

        assert response.status_code == 500
        assert response.json() == {"error": "boom"}

    def test_no_auth_required(self, client, items):
        from wardrobe_service.app.main import app
        from wardrobe_service.core.auth import get_current_user

        app.dependency_overrides.pop(get_current_user)
        response = client.post("/ai/generate-outfit", json={"items": items, "occasion": "Party"})
        assert response.status_code == 200

    def test_one_call_per_request(self, client, items, llm_client):
        client.post("/ai/generate-outfit", json={"items": items, "occasion": "Formal"})
        client.post("/ai/generate-outfit", json={"items": items, "occasion": "Casual"})
        assert len(llm_client.prompts) == 2
