"""Co-occurrence analysis over order history.

Given a seed product, finds the other products bought in the same orders and
scores them by confidence: the number of the seed's orders that also contain
the candidate, divided by the number of orders containing the seed. The
measure is directional (it is not normalized by the candidate's own
popularity), which is what the strategies built on top of it expect.
"""

import logging
import time
from typing import List, NamedTuple, Optional

from basketrec.recommender.models import CoOccurrenceOptions, Product, RecommendationResult
from basketrec.recommender.store import DataAccessPort
from basketrec.recommender.utils import to_recommendation_result

# Configure module logger
logger = logging.getLogger(__name__)

# The grouped count query over-fetches before the confidence filter
CANDIDATE_OVERFETCH = 2


class CoOccurrenceResult(NamedTuple):
    """Outcome of one analysis.

    Attributes:
        seed: The resolved seed product, or None when it is missing/inactive.
        order_count: Number of orders containing the seed.
        recommendations: Ranked candidates, highest confidence first.
    """

    seed: Optional[Product]
    order_count: int
    recommendations: List[RecommendationResult]

    @property
    def has_signal(self) -> bool:
        return self.seed is not None and self.order_count > 0


def compute_co_occurrence(
    store: DataAccessPort,
    seed_product_id: str,
    options: Optional[CoOccurrenceOptions] = None,
) -> CoOccurrenceResult:
    """Find products frequently bought together with a seed product.

    Args:
        store: Data access port to query.
        seed_product_id: Product to analyze.
        options: Thresholds; defaults to ``CoOccurrenceOptions()``.

    Returns:
        A ``CoOccurrenceResult``. An unknown or inactive seed yields
        ``seed=None``; a seed that was never ordered yields ``order_count=0``.
        Neither case is an error, callers pick their own fallback.

    Example:
        >>> result = compute_co_occurrence(store, "p1", CoOccurrenceOptions(min_confidence=0.2))
        >>> [(r.id, r.score) for r in result.recommendations]
    """
    options = options or CoOccurrenceOptions()
    start_time = time.time()

    seed = store.find_product_by_id(seed_product_id)
    if seed is None or not seed.is_active:
        logger.debug(f"Seed product {seed_product_id} missing or inactive")
        return CoOccurrenceResult(seed=None, order_count=0, recommendations=[])

    order_ids = store.find_order_ids_containing_product(seed_product_id)
    total_orders = len(order_ids)
    if total_orders == 0:
        logger.debug(f"Seed product {seed_product_id} has no orders")
        return CoOccurrenceResult(seed=seed, order_count=0, recommendations=[])

    counts = store.count_co_occurring_products(
        order_ids,
        exclude_product_id=seed_product_id,
        min_count=options.min_co_occurrence,
        limit=options.max_results * CANDIDATE_OVERFETCH,
    )

    candidates = [
        (item.product_id, item.count / total_orders)
        for item in counts
        if item.product_id != seed_product_id and item.count > options.min_co_occurrence
    ]
    candidates = [(pid, confidence) for pid, confidence in candidates if confidence >= options.min_confidence]
    candidates.sort(key=lambda c: (-c[1], c[0]))
    candidates = candidates[: options.max_results]

    if not candidates:
        return CoOccurrenceResult(seed=seed, order_count=total_orders, recommendations=[])

    products = store.find_products_by_ids([pid for pid, _ in candidates], active_only=True)
    products_by_id = {product.id: product for product in products}

    recommendations = [
        to_recommendation_result(products_by_id[pid], confidence)
        for pid, confidence in candidates
        if pid in products_by_id
    ]

    logger.debug(
        "Computed co-occurrence",
        extra={
            "seed_product_id": seed_product_id,
            "seed_orders": total_orders,
            "num_candidates": len(counts),
            "num_recommendations": len(recommendations),
            "compute_time_ms": round((time.time() - start_time) * 1000, 2),
        },
    )

    return CoOccurrenceResult(seed=seed, order_count=total_orders, recommendations=recommendations)
