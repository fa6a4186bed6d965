"""Recommendation strategies.

Every strategy turns an entity key (a product, a user, a category or a cart)
into a ranked list of ``RecommendationResult``. When a strategy has no signal
it degrades along a fixed fallback chain instead of failing:

    frequently bought together -> category based -> popularity
    personalized / cart based   -> popularity
    popularity                  -> most recent active products

Data access failures are not caught here; they propagate to the caller.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from basketrec.recommender.cooccurrence import compute_co_occurrence
from basketrec.recommender.models import (
    DEFAULT_MIN_CO_OCCURRENCE,
    DEFAULT_MIN_CONFIDENCE,
    CoOccurrenceOptions,
    RecommendationOptions,
    RecommendationResult,
)
from basketrec.recommender.store import DataAccessPort
from basketrec.recommender.utils import (
    ScoreAccumulator,
    resolve_ranked,
    to_recommendation_result,
)

# Configure module logger
logger = logging.getLogger(__name__)

CATEGORY_SCORE = 0.5
RECENT_FALLBACK_SCORE = 0.3
# Category fallback size when a product has never been ordered
UNORDERED_CATEGORY_LIMIT = 5
# Per-seed candidate pool, as a multiple of the requested limit
PERSONALIZED_POOL_FACTOR = 2
CART_POOL_FACTOR = 3
POPULARITY_POOL_FACTOR = 2


class RecommendationEngine:
    """Runs the recommendation strategies against a data access port.

    The engine holds no state between calls; every answer is derived from the
    store's current content.
    """

    def __init__(self, store: DataAccessPort):
        self.store = store

    def get_frequently_bought_together(
        self,
        product_id: str,
        options: Optional[CoOccurrenceOptions] = None,
    ) -> List[RecommendationResult]:
        """Products bought in the same orders as ``product_id``.

        A product that was never ordered falls back to up to five newest
        products of its category. An unknown or inactive product yields an
        empty list.
        """
        options = options or CoOccurrenceOptions()
        analysis = compute_co_occurrence(self.store, product_id, options)

        if analysis.seed is None:
            return []

        if analysis.order_count == 0:
            logger.debug(f"Product {product_id} has no orders, falling back to category")
            return self.get_category_based_recommendations(
                analysis.seed.category,
                RecommendationOptions(
                    limit=min(options.max_results, UNORDERED_CATEGORY_LIMIT),
                    exclude_product_ids=[product_id],
                ),
            )

        return analysis.recommendations

    def _accumulate(
        self,
        seed_ids: Iterable[str],
        skip_ids: Iterable[str],
        seed_options: CoOccurrenceOptions,
    ) -> ScoreAccumulator:
        accumulator = ScoreAccumulator(skip_ids)
        for seed_id in seed_ids:
            accumulator.add(self.get_frequently_bought_together(seed_id, seed_options))
        return accumulator

    def get_personalized_recommendations(
        self,
        user_id: str,
        options: Optional[RecommendationOptions] = None,
    ) -> List[RecommendationResult]:
        """Recommendations from everything ``user_id`` has bought.

        Each purchased product contributes its frequently-bought-together
        candidates; a candidate's score is the sum of its confidences over all
        purchased products, capped at 1.0. Users without history get the
        popularity fallback.
        """
        options = options or RecommendationOptions()
        logger.info(f"Generating personalized recommendations for user {user_id}, limit={options.limit}")

        order_ids = self.store.find_order_ids_for_user(user_id)
        if not order_ids:
            logger.info(f"User {user_id} has no orders, using popularity fallback")
            return self.get_popular_products(options)

        purchased_ids = list(dict.fromkeys(self.store.find_product_ids_in_orders(order_ids)))
        if not purchased_ids:
            logger.info(f"User {user_id} has no purchased products, using popularity fallback")
            return self.get_popular_products(options)

        accumulator = self._accumulate(
            purchased_ids,
            skip_ids=[*purchased_ids, *options.exclude_product_ids],
            seed_options=CoOccurrenceOptions(
                min_co_occurrence=DEFAULT_MIN_CO_OCCURRENCE,
                min_confidence=options.min_score,
                max_results=options.limit * PERSONALIZED_POOL_FACTOR,
            ),
        )

        ranked = accumulator.top(options.limit)
        if not ranked:
            logger.info(f"No co-purchase signal for user {user_id}, using popularity fallback")
            return self.get_popular_products(options)

        products = self.store.find_products_by_ids([pid for pid, _ in ranked], active_only=True)
        results = resolve_ranked(ranked, products)

        logger.info(
            f"Generated {len(results)} personalized recommendations for user {user_id}",
            extra={"user_id": user_id, "num_seeds": len(purchased_ids)},
        )

        return results

    def get_order_history_recommendations(
        self,
        user_id: str,
        options: Optional[RecommendationOptions] = None,
    ) -> List[RecommendationResult]:
        """Recommendations for the order history page.

        Currently the same computation as ``get_personalized_recommendations``.
        """
        return self.get_personalized_recommendations(user_id, options)

    def get_category_based_recommendations(
        self,
        category: Optional[str],
        options: Optional[RecommendationOptions] = None,
    ) -> List[RecommendationResult]:
        """Newest active products of ``category``, each scored 0.5."""
        options = options or RecommendationOptions()

        if not category:
            logger.debug("No category given, using popularity fallback")
            return self.get_popular_products(options)

        products = self.store.find_products_by_category(
            category,
            exclude_ids=options.exclude_product_ids,
            limit=options.limit,
            order_by_created_desc=True,
        )

        return [to_recommendation_result(product, CATEGORY_SCORE) for product in products]

    def get_cart_recommendations(
        self,
        cart_product_ids: Sequence[str],
        options: Optional[RecommendationOptions] = None,
    ) -> List[RecommendationResult]:
        """Products frequently bought with the items currently in a cart.

        Scores are accumulated over the cart lines like the personalized
        strategy; a product listed twice contributes twice. Cart items and
        excluded ids never come back, including from the popularity fallback.
        """
        options = options or RecommendationOptions()
        logger.info(f"Generating cart recommendations for {len(cart_product_ids)} items, limit={options.limit}")

        if not cart_product_ids:
            return self.get_popular_products(options)

        cart_ids = list(dict.fromkeys(cart_product_ids))
        all_exclude_ids = [*cart_ids, *options.exclude_product_ids]

        accumulator = self._accumulate(
            cart_product_ids,
            skip_ids=all_exclude_ids,
            seed_options=CoOccurrenceOptions(
                min_co_occurrence=DEFAULT_MIN_CO_OCCURRENCE,
                min_confidence=DEFAULT_MIN_CONFIDENCE,
                max_results=options.limit * CART_POOL_FACTOR,
            ),
        )

        ranked = accumulator.top(options.limit)
        if not ranked:
            logger.info("No co-purchase signal for cart, using popularity fallback")
            return self.get_popular_products(
                options.model_copy(update={"exclude_product_ids": all_exclude_ids})
            )

        products = self.store.find_products_by_ids([pid for pid, _ in ranked], active_only=True)
        return resolve_ranked(ranked, products)

    def get_popular_products(
        self,
        options: Optional[RecommendationOptions] = None,
    ) -> List[RecommendationResult]:
        """Globally most ordered products, the last fallback of every chain.

        Scores are normalized by the highest count seen before exclusions are
        applied, so the overall best seller defines 1.0 even when it is
        excluded. Without usable order data the newest active products are
        returned with a flat 0.3.
        """
        options = options or RecommendationOptions()
        exclude_ids = set(options.exclude_product_ids)

        popular = self.store.count_product_occurrences_globally(options.limit * POPULARITY_POOL_FACTOR)
        candidate_ids = [item.product_id for item in popular if item.product_id not in exclude_ids][: options.limit]

        if not candidate_ids:
            logger.debug("No order data for popularity, using most recent products")
            recent = self.store.find_recent_active_products(options.exclude_product_ids, options.limit)
            return [to_recommendation_result(product, RECENT_FALLBACK_SCORE) for product in recent]

        max_count = max(item.count for item in popular)
        counts = {item.product_id: item.count for item in popular}
        ranked = [(pid, counts[pid] / max_count) for pid in candidate_ids]

        products = self.store.find_products_by_ids(candidate_ids, active_only=True)
        return resolve_ranked(ranked, products, cap=False)[: options.limit]

