"""Recommendation endpoints for the BasketRec API.

This module exposes the recommendation strategies and the event tracker over
HTTP. Handlers only translate parameters into option structs; all ranking
and fallback behavior lives in ``basketrec.recommender``.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from basketrec.api.deps import get_engine, get_tracker
from basketrec.api.metrics import metrics_service
from basketrec.exceptions import BasketRecException, RecommendationError
from basketrec.recommender.models import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MIN_CO_OCCURRENCE,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_MIN_SCORE,
    CoOccurrenceOptions,
    EventType,
    RecommendationOptions,
    RecommendationResult,
    RecommendationType,
)
from basketrec.recommender.strategies import RecommendationEngine
from basketrec.recommender.tracker import EventTracker

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommendations",
    tags=["recommendations"],
)


class RecommendationListResponse(BaseModel):
    """Response model for every recommendation strategy.

    Attributes:
        strategy: Strategy that served the request.
        count: Number of recommendations.
        recommendations: Recommendations, best first.
    """

    strategy: RecommendationType
    count: int
    recommendations: List[RecommendationResult]


class CartRecommendationRequest(BaseModel):
    product_ids: List[str] = Field(default_factory=list, description="Products currently in the cart")
    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    exclude_product_ids: List[str] = Field(default_factory=list)


class TrackEventRequest(BaseModel):
    user_id: Optional[str] = None
    product_id: str
    recommended_product_id: str
    event_type: EventType
    recommendation_type: RecommendationType
    metadata: Optional[Dict[str, Any]] = None


class TrackEventResponse(BaseModel):
    status: str = "accepted"


class StatsResponse(BaseModel):
    product_id: str
    recommended_product_id: str
    recommendation_type: RecommendationType
    view_count: int
    click_count: int
    conversion_count: int
    click_through_rate: float
    conversion_rate: float
    last_updated_at: str


def _run_strategy(
    strategy: RecommendationType,
    func: Callable[..., List[RecommendationResult]],
    *args: Any,
) -> RecommendationListResponse:
    """Call a strategy, record its latency and wrap unexpected failures."""
    start_time = time.time()

    try:
        results = func(*args)
    except BasketRecException:
        raise
    except Exception as e:
        logger.error(
            f"Error generating {strategy.value} recommendations: {e}",
            exc_info=True,
        )
        raise RecommendationError(strategy.value, e) from e

    latency_ms = (time.time() - start_time) * 1000
    metrics_service.record_call(strategy.value, latency_ms, len(results))

    logger.info(
        "Recommendations served",
        extra={
            "strategy": strategy.value,
            "num_recommendations": len(results),
            "latency_ms": round(latency_ms, 2),
        },
    )

    return RecommendationListResponse(strategy=strategy, count=len(results), recommendations=results)


@router.get(
    "/frequently-bought-together/{product_id}",
    response_model=RecommendationListResponse,
)
def frequently_bought_together(
    product_id: str,
    min_co_occurrence: int = Query(DEFAULT_MIN_CO_OCCURRENCE, ge=0),
    min_confidence: float = Query(DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0),
    max_results: int = Query(DEFAULT_MAX_RESULTS, ge=1),
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationListResponse:
    """Products frequently bought together with a product.

    Example:
        GET /recommendations/frequently-bought-together/p1?min_confidence=0.2
    """
    options = CoOccurrenceOptions(
        min_co_occurrence=min_co_occurrence,
        min_confidence=min_confidence,
        max_results=max_results,
    )
    return _run_strategy(
        RecommendationType.FREQUENTLY_BOUGHT_TOGETHER,
        engine.get_frequently_bought_together,
        product_id,
        options,
    )


@router.get("/personalized/{user_id}", response_model=RecommendationListResponse)
def personalized(
    user_id: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    min_score: float = Query(DEFAULT_MIN_SCORE, ge=0.0, le=1.0),
    exclude: List[str] = Query(default=[]),
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationListResponse:
    """Personalized recommendations from a user's purchase history."""
    options = RecommendationOptions(limit=limit, min_score=min_score, exclude_product_ids=exclude)
    return _run_strategy(
        RecommendationType.PERSONALIZED,
        engine.get_personalized_recommendations,
        user_id,
        options,
    )


@router.get("/order-history/{user_id}", response_model=RecommendationListResponse)
def order_history(
    user_id: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    min_score: float = Query(DEFAULT_MIN_SCORE, ge=0.0, le=1.0),
    exclude: List[str] = Query(default=[]),
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationListResponse:
    """Recommendations shown next to a user's order history."""
    options = RecommendationOptions(limit=limit, min_score=min_score, exclude_product_ids=exclude)
    return _run_strategy(
        RecommendationType.ORDER_RELATED,
        engine.get_order_history_recommendations,
        user_id,
        options,
    )


@router.get("/category/{category}", response_model=RecommendationListResponse)
def category_based(
    category: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    exclude: List[str] = Query(default=[]),
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationListResponse:
    """Newest products of a category."""
    options = RecommendationOptions(limit=limit, exclude_product_ids=exclude)
    return _run_strategy(
        RecommendationType.CATEGORY_BASED,
        engine.get_category_based_recommendations,
        category,
        options,
    )


@router.post("/cart", response_model=RecommendationListResponse)
def cart(
    request: CartRecommendationRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> RecommendationListResponse:
    """Products frequently bought with the items in a cart.

    Example:
        POST /recommendations/cart
        {"product_ids": ["p1", "p2"], "limit": 3}
    """
    options = RecommendationOptions(limit=request.limit, exclude_product_ids=request.exclude_product_ids)
    return _run_strategy(
        RecommendationType.CART_RELATED,
        engine.get_cart_recommendations,
        request.product_ids,
        options,
    )


def _track_in_background(tracker: EventTracker, event: TrackEventRequest) -> None:
    success = tracker.track_recommendation_event_safely(**event.model_dump())
    metrics_service.record_tracking(success)


@router.post(
    "/track",
    response_model=TrackEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def track(
    event: TrackEventRequest,
    background_tasks: BackgroundTasks,
    tracker: EventTracker = Depends(get_tracker),
) -> TrackEventResponse:
    """Record a view, click or conversion on a shown recommendation.

    The write happens after the response is sent; a failed write is logged
    and counted but never reported to the caller.
    """
    background_tasks.add_task(_track_in_background, tracker, event)
    return TrackEventResponse()


@router.get("/stats", response_model=StatsResponse)
def stats(
    product_id: str,
    recommended_product_id: str,
    recommendation_type: RecommendationType,
    tracker: EventTracker = Depends(get_tracker),
) -> StatsResponse:
    """Counters and rates for one (product, recommended product, type) key."""
    row = tracker.get_recommendation_stats(product_id, recommended_product_id, recommendation_type)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No stats recorded for this recommendation",
        )

    return StatsResponse(
        product_id=row.product_id,
        recommended_product_id=row.recommended_product_id,
        recommendation_type=row.recommendation_type,
        view_count=row.view_count,
        click_count=row.click_count,
        conversion_count=row.conversion_count,
        click_through_rate=row.click_through_rate,
        conversion_rate=row.conversion_rate,
        last_updated_at=row.last_updated_at.isoformat(),
    )
