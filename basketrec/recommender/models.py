"""Data model for the recommendation core.

Entities consumed from the storefront (products, orders, order items), the
records the core produces (results, events, stats) and the option structs
each strategy accepts.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

# Default option values; the API layer relies on these exact numbers
DEFAULT_LIMIT = 10
DEFAULT_MIN_SCORE = 0.1
DEFAULT_MIN_CO_OCCURRENCE = 2
DEFAULT_MIN_CONFIDENCE = 0.1
DEFAULT_MAX_RESULTS = 20

UNCATEGORIZED_LABEL = "Uncategorized"


class EventType(str, Enum):
    """Interaction recorded against a shown recommendation."""

    VIEW = "view"
    CLICK = "click"
    CONVERSION = "conversion"


class RecommendationType(str, Enum):
    """Strategy that produced a shown recommendation."""

    FREQUENTLY_BOUGHT_TOGETHER = "frequently_bought_together"
    PERSONALIZED = "personalized"
    CATEGORY_BASED = "category_based"
    CART_RELATED = "cart_related"
    ORDER_RELATED = "order_related"


class Product(BaseModel):
    """Catalog product as read from the store."""

    id: str
    name: str
    image: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    stock: int = Field(default=0, ge=0)
    is_active: bool = True
    created_at: datetime


class Order(BaseModel):
    id: str
    user_id: str
    created_at: datetime


class OrderItem(BaseModel):
    order_id: str
    product_id: str


class ProductCount(NamedTuple):
    """Row of a grouped count query."""

    product_id: str
    count: int


class StatsKey(NamedTuple):
    """Composite key of the stats aggregate."""

    product_id: str
    recommended_product_id: str
    recommendation_type: RecommendationType


class RecommendationResult(BaseModel):
    """A scored recommendation, computed per request and never stored."""

    id: str
    name: str
    image: str
    price: float
    category: Optional[str] = None
    score: float = Field(..., ge=0.0, le=1.0)

    @property
    def category_label(self) -> str:
        return self.category or UNCATEGORIZED_LABEL


class RecommendationEvent(BaseModel):
    """Append-only record of one tracked interaction."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: Optional[str] = None
    product_id: str
    recommended_product_id: str
    event_type: EventType
    recommendation_type: RecommendationType
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class RecommendationStats(BaseModel):
    """Running counters for one (product, recommended product, type) key."""

    id: str
    product_id: str
    recommended_product_id: str
    recommendation_type: RecommendationType
    view_count: int = 0
    click_count: int = 0
    conversion_count: int = 0
    created_at: datetime
    last_updated_at: datetime

    @property
    def key(self) -> StatsKey:
        return StatsKey(
            self.product_id, self.recommended_product_id, self.recommendation_type
        )

    @property
    def click_through_rate(self) -> float:
        """Clicks per view, 0.0 before the first view."""
        if self.view_count == 0:
            return 0.0
        return self.click_count / self.view_count

    @property
    def conversion_rate(self) -> float:
        """Conversions per click, 0.0 before the first click."""
        if self.click_count == 0:
            return 0.0
        return self.conversion_count / self.click_count


class CoOccurrenceOptions(BaseModel):
    """Thresholds for the co-occurrence analyzer.

    Attributes:
        min_co_occurrence: A candidate must appear in strictly more than this
            many of the seed's orders.
        min_confidence: Lowest accepted confidence (co-occurrence count over
            the number of orders containing the seed).
        max_results: Maximum number of candidates returned.
    """

    model_config = ConfigDict(frozen=True)

    min_co_occurrence: int = Field(default=DEFAULT_MIN_CO_OCCURRENCE, ge=0)
    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0)
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, ge=1)


class RecommendationOptions(BaseModel):
    """Options shared by the personalized, category, cart and popularity paths."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    min_score: float = Field(default=DEFAULT_MIN_SCORE, ge=0.0, le=1.0)
    exclude_product_ids: List[str] = Field(default_factory=list)
