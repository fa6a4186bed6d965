"""Tests for the FastAPI application endpoints.

This module contains integration tests for the BasketRec API endpoints,
including health checks, the recommendation strategies and event tracking.
The engine and tracker dependencies are pointed at a small in-memory store.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from basketrec.api.deps import get_engine, get_tracker
from basketrec.api.logging_config import JSONFormatter
from basketrec.api.main import app
from basketrec.config import get_settings
from basketrec.recommender.strategies import RecommendationEngine
from basketrec.recommender.tracker import EventTracker

# Create test client
client = TestClient(app)


@pytest.fixture
def api_store(household_store):
    """Serve every request from the household store."""
    app.dependency_overrides[get_engine] = lambda: RecommendationEngine(household_store)
    app.dependency_overrides[get_tracker] = lambda: EventTracker(household_store)
    yield household_store
    app.dependency_overrides.clear()


def test_ping_endpoint():
    """Test that the /ping endpoint returns correct status and JSON."""
    response = client.get("/ping")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_status_endpoint():
    """Test that the /status endpoint returns store status information."""
    response = client.get("/status")

    assert response.status_code == 200
    data = response.json()

    assert isinstance(data["store_loaded"], bool)
    assert isinstance(data["num_products"], int)
    assert isinstance(data["num_orders"], int)
    assert isinstance(data["num_order_items"], int)


def _json_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h.formatter, JSONFormatter)]


def test_logging_is_configured_on_startup_only():
    """Importing the app leaves logging alone; starting it installs JSON logs."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level

    try:
        assert _json_handlers() == []

        with TestClient(app) as started:
            assert started.get("/ping").status_code == 200
            assert len(_json_handlers()) == 1
            assert app.title == get_settings().APP_NAME
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_request_id_header():
    response = client.get("/ping", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_frequently_bought_together_endpoint(api_store):
    response = client.get("/recommendations/frequently-bought-together/Y")

    assert response.status_code == 200
    data = response.json()
    assert data["strategy"] == "frequently_bought_together"
    assert data["count"] == 1
    assert data["recommendations"][0]["id"] == "C"
    assert data["recommendations"][0]["score"] == pytest.approx(0.75)


def test_frequently_bought_together_thresholds(api_store):
    response = client.get(
        "/recommendations/frequently-bought-together/Y",
        params={"min_confidence": 0.8},
    )

    assert response.status_code == 200
    assert response.json()["recommendations"] == []


def test_personalized_endpoint(api_store):
    response = client.get("/recommendations/personalized/alice", params={"limit": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["strategy"] == "personalized"
    assert [r["id"] for r in data["recommendations"]] == ["C", "D"]
    assert data["recommendations"][0]["score"] == 1.0


def test_personalized_endpoint_exclusions(api_store):
    response = client.get("/recommendations/personalized/alice", params=[("exclude", "C")])

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["recommendations"]] == ["D"]


def test_order_history_endpoint(api_store):
    response = client.get("/recommendations/order-history/alice")

    assert response.status_code == 200
    data = response.json()
    assert data["strategy"] == "order_related"
    assert [r["id"] for r in data["recommendations"]] == ["C", "D"]


def test_category_endpoint(api_store):
    response = client.get("/recommendations/category/Energy", params={"limit": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [r["id"] for r in data["recommendations"]] == ["X", "Y"]
    assert all(r["score"] == 0.5 for r in data["recommendations"])


def test_cart_endpoint(api_store):
    response = client.post("/recommendations/cart", json={"product_ids": ["X"], "limit": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["strategy"] == "cart_related"
    assert [r["id"] for r in data["recommendations"]] == ["C", "D"]


def test_empty_cart_endpoint(api_store):
    response = client.post("/recommendations/cart", json={})

    assert response.status_code == 200
    assert response.json()["recommendations"][0]["id"] == "X"


def test_track_then_stats(api_store):
    event = {
        "product_id": "X",
        "recommended_product_id": "C",
        "event_type": "click",
        "recommendation_type": "personalized",
        "user_id": "alice",
        "metadata": {"position": 1},
    }

    response = client.post("/recommendations/track", json=event)
    assert response.status_code == 202
    assert response.json() == {"status": "accepted"}

    response = client.get(
        "/recommendations/stats",
        params={"product_id": "X", "recommended_product_id": "C", "recommendation_type": "personalized"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["click_count"] == 1
    assert data["view_count"] == 0
    assert data["conversion_rate"] == 0.0
    assert api_store.events[0].metadata == {"position": 1}


def test_stats_not_found(api_store):
    response = client.get(
        "/recommendations/stats",
        params={"product_id": "X", "recommended_product_id": "D", "recommendation_type": "cart_related"},
    )

    assert response.status_code == 404


def test_metrics_endpoint(api_store):
    client.get("/recommendations/personalized/alice")
    client.get("/recommendations/personalized/nobody")
    client.get("/recommendations/category/Garden")

    response = client.get("/metrics")

    assert response.status_code == 200
    data = response.json()
    assert data["strategies"]["personalized"]["calls"] == 2
    assert data["strategies"]["category_based"]["empty_results"] == 1
    assert data["tracked_events"] == 0
    assert data["dropped_events"] == 0
