"""Tests for error handling in the BasketRec API.

Tests missing store data, failing data access, request validation and
tracking failures.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from basketrec.api import deps
from basketrec.api.deps import get_engine, get_tracker
from basketrec.api.main import app
from basketrec.config import get_settings
from basketrec.exceptions import DataAccessError
from basketrec.recommender.strategies import RecommendationEngine
from basketrec.recommender.tracker import EventTracker

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)

# Create test client
client = TestClient(app)


class FailingStore:
    """Store whose order lookups fail with a given error."""

    def __init__(self, error: Exception):
        self.error = error

    def find_order_ids_for_user(self, user_id):
        raise self.error

    def insert_recommendation_event(self, event):
        raise self.error


@pytest.fixture
def failing_engine():
    def override(error: Exception):
        app.dependency_overrides[get_engine] = lambda: RecommendationEngine(FailingStore(error))
        app.dependency_overrides[get_tracker] = lambda: EventTracker(FailingStore(error))

    yield override
    app.dependency_overrides.clear()


@pytest.fixture
def missing_data_dir(tmp_path, monkeypatch):
    """Point the settings at a data directory that does not exist."""
    monkeypatch.setenv("BASKETREC_DATA_DIR", str(tmp_path / "no_data"))
    monkeypatch.delenv("BASKETREC_SNAPSHOT_PATH", raising=False)
    get_settings.cache_clear()
    deps.reset_store_cache()
    yield
    get_settings.cache_clear()
    deps.reset_store_cache()


@pytest.fixture
def api_store(household_store):
    app.dependency_overrides[get_engine] = lambda: RecommendationEngine(household_store)
    app.dependency_overrides[get_tracker] = lambda: EventTracker(household_store)
    yield household_store
    app.dependency_overrides.clear()


def test_store_not_found_error(missing_data_dir):
    """Test that missing store data returns 503 Service Unavailable."""
    response = client.get("/recommendations/personalized/alice")

    assert response.status_code == 503
    data = response.json()
    assert data["error"] == "StoreNotFoundError"
    assert "not found" in data["message"]


def test_status_does_not_load_store(missing_data_dir):
    response = client.get("/status")

    assert response.status_code == 200
    assert response.json()["store_loaded"] is False


def test_reload_with_missing_data(missing_data_dir):
    response = client.post("/reload-store")

    assert response.status_code == 503


def test_unexpected_store_failure_returns_500(failing_engine):
    """Test that an unexpected failure is wrapped as a recommendation error."""
    failing_engine(RuntimeError("connection reset"))

    response = client.get("/recommendations/personalized/alice")

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "RecommendationError"
    assert data["details"]["strategy"] == "personalized"
    assert data["details"]["error_type"] == "RuntimeError"


def test_data_access_error_is_not_rewrapped(failing_engine):
    failing_engine(DataAccessError("find_order_ids_for_user", TimeoutError("query timed out")))

    response = client.get("/recommendations/order-history/alice")

    assert response.status_code == 503
    assert response.json()["error"] == "DataAccessError"


def test_tracking_failure_is_not_reported_to_caller(failing_engine):
    """A failed write is dropped and counted, the request still succeeds."""
    failing_engine(RuntimeError("disk full"))

    response = client.post(
        "/recommendations/track",
        json={
            "product_id": "X",
            "recommended_product_id": "C",
            "event_type": "view",
            "recommendation_type": "cart_related",
        },
    )

    assert response.status_code == 202
    metrics = client.get("/metrics").json()
    assert metrics["dropped_events"] == 1
    assert metrics["tracked_events"] == 0


def test_unknown_product_is_not_an_error(api_store):
    response = client.get("/recommendations/frequently-bought-together/does-not-exist")

    assert response.status_code == 200
    assert response.json()["recommendations"] == []


@pytest.mark.parametrize(
    "path",
    [
        "/recommendations/personalized/alice?limit=0",
        "/recommendations/personalized/alice?min_score=1.5",
        "/recommendations/category/Energy?limit=-1",
        "/recommendations/frequently-bought-together/X?min_confidence=2",
        "/recommendations/frequently-bought-together/X?max_results=0",
        "/recommendations/frequently-bought-together/X?min_co_occurrence=-1",
    ],
)
def test_invalid_query_parameters(api_store, path):
    """Test that out-of-range options return 422 Unprocessable Entity."""
    response = client.get(path)

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "ValidationError"
    assert data["details"]["errors"]


def test_invalid_cart_body(api_store):
    response = client.post("/recommendations/cart", json={"product_ids": "X", "limit": 0})

    assert response.status_code == 422


def test_invalid_event_type(api_store):
    response = client.post(
        "/recommendations/track",
        json={
            "product_id": "X",
            "recommended_product_id": "C",
            "event_type": "purchase",
            "recommendation_type": "cart_related",
        },
    )

    assert response.status_code == 422


def test_invalid_recommendation_type_for_stats(api_store):
    response = client.get(
        "/recommendations/stats",
        params={"product_id": "X", "recommended_product_id": "C", "recommendation_type": "trending"},
    )

    assert response.status_code == 422
