"""
tests/unit/test_api_server.py

HTTP layer: request validation, error mapping and baseline fallbacks.
"""

import json

import pytest
from fastapi.testclient import TestClient

from kitchen_ai.api_server import app, get_pipeline
from kitchen_ai.errors import PermanentProviderError, TransientRateLimitError


@pytest.fixture
def client_with(make_pipeline):
    """Returns a factory: client_with(*replies, max_retries=...) → TestClient."""

    def _client(*replies, max_retries: int = 3):
        pipeline = make_pipeline(*replies, max_retries=max_retries)
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


class TestMeta:
    def test_health(self, client_with):
        response = client_with("{}").get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestRecipeEndpoints:
    def test_recommendations(self, client_with):
        reply = json.dumps([{"title": "Shakshuka", "ingredients": ["eggs"]}])
        response = client_with(reply).post("/recipes/recommendations", json={"ingredients": ["eggs"]})

        assert response.status_code == 200
        body = response.json()
        assert body[0]["title"] == "Shakshuka"
        assert body[0]["instructions"] == []

    def test_empty_ingredients_rejected(self, client_with):
        response = client_with("[]").post("/recipes/recommendations", json={"ingredients": []})
        assert response.status_code == 422

    def test_malformed_reply_is_bad_gateway(self, client_with):
        response = client_with("Sorry, no recipes today.").post(
            "/recipes/recommendations", json={"ingredients": ["eggs"]},
        )
        assert response.status_code == 502
        assert "recipe recommendations" in response.json()["detail"]

    def test_exhausted_rate_limit_is_service_unavailable(self, client_with):
        client = client_with(TransientRateLimitError(), max_retries=0)
        response = client.post("/recipes/nutrition", json={"ingredients": ["rice"]})
        assert response.status_code == 503

    def test_meal_plan_days_bounded(self, client_with):
        response = client_with("[]").post("/meal_plan", json={"preferences": ["quick"], "days": 0})
        assert response.status_code == 422


class TestCuisineEndpoints:
    def test_pairings_fall_back_to_baseline(self, client_with):
        client = client_with(PermanentProviderError("API key not valid", status=400))
        response = client.post("/cuisine/pairings", json={
            "cuisine": {"name": "Indian", "region": "south_asia"},
            "recipe": {"name": "Chickpea Curry"},
        })

        assert response.status_code == 200
        assert response.json()["side_dishes"] == ["Naan", "Raita", "Chutney"]

    def test_details_without_description_is_bad_gateway(self, client_with):
        response = client_with('{"key_ingredients": "rice"}').post("/cuisine/details", json={"name": "Thai"})
        assert response.status_code == 502

    def test_substitutions(self, client_with):
        client = client_with('[{"original": "Paneer", "substitute": "tofu"}]')
        response = client.post("/cuisine/substitutions", json={
            "recipe": {"name": "Palak Paneer", "authentic_ingredients": ["Paneer"]},
            "pantry_items": ["tofu"],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["substitutions"][0]["substitute"] == "firm tofu"
        assert body["authenticity_score"] == 100

    def test_substitutions_fall_back_to_empty_result(self, client_with):
        client = client_with(PermanentProviderError("down"))
        response = client.post("/cuisine/substitutions", json={"recipe": {"authentic_ingredients": ["ghee"]}})

        assert response.status_code == 200
        assert response.json()["substitutions"] == []
        assert response.json()["authenticity_score"] == 0


class TestKitchenEndpoints:
    def test_maintenance_tips_fallback(self, client_with):
        client = client_with(PermanentProviderError("down"))
        response = client.post("/kitchen/maintenance_tips", json={"name": "Chef's Knife", "condition": "fair"})

        assert response.status_code == 200
        assert response.json()[-1] == "Consider professional sharpening to restore performance"

    def test_inventory_analysis(self, client_with):
        client = client_with('{"staple_items": ["rice"], "inventory_score": 8}')
        response = client.post("/kitchen/inventory_analysis", json={"items": [{"name": "rice"}]})

        assert response.status_code == 200
        assert response.json()["inventory_score"] == 8.0
        assert response.json()["low_stock"] == []
