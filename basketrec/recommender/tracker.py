"""Recommendation event tracking.

Every tracked interaction is appended to the event log and folded into the
stats aggregate for its (product, recommended product, strategy) key.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from basketrec.exceptions import BasketRecException, TrackingError
from basketrec.recommender.models import (
    EventType,
    RecommendationEvent,
    RecommendationStats,
    RecommendationType,
    StatsKey,
)
from basketrec.recommender.store import DataAccessPort

# Configure module logger
logger = logging.getLogger(__name__)


class EventTracker:
    """Records view/click/conversion events against shown recommendations."""

    def __init__(self, store: DataAccessPort):
        self.store = store

    def track_recommendation_event(
        self,
        product_id: str,
        recommended_product_id: str,
        event_type: EventType,
        recommendation_type: RecommendationType,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RecommendationStats:
        """Record one event and update the stats aggregate.

        Args:
            product_id: Product the recommendation was shown for.
            recommended_product_id: Product that was recommended.
            event_type: view, click or conversion.
            recommendation_type: Strategy that produced the recommendation.
            user_id: Acting user, if known.
            metadata: Opaque extra data stored with the event.

        Returns:
            The stats row for the key after the update.

        Raises:
            TrackingError: If the event or the stats update cannot be written.
        """
        event_type = EventType(event_type)
        recommendation_type = RecommendationType(recommendation_type)

        event = RecommendationEvent(
            id=str(uuid.uuid4()),
            user_id=user_id,
            product_id=product_id,
            recommended_product_id=recommended_product_id,
            event_type=event_type,
            recommendation_type=recommendation_type,
            metadata=metadata,
            created_at=datetime.now(timezone.utc),
        )
        key = StatsKey(product_id, recommended_product_id, recommendation_type)

        try:
            self.store.insert_recommendation_event(event)
            stats = self.store.upsert_recommendation_stats(key, event_type)
        except BasketRecException:
            raise
        except Exception as e:
            logger.error(
                "Failed to track recommendation event",
                extra={
                    "event_id": event.id,
                    "event_type": event_type.value,
                    "recommendation_type": recommendation_type.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise TrackingError(event_type.value, e) from e

        logger.debug(
            "Tracked recommendation event",
            extra={
                "event_id": event.id,
                "event_type": event_type.value,
                "recommendation_type": recommendation_type.value,
                "product_id": product_id,
                "recommended_product_id": recommended_product_id,
            },
        )

        return stats

    def track_recommendation_event_safely(self, **kwargs: Any) -> bool:
        """Fire-and-forget variant for consumption paths.

        Takes the same arguments as ``track_recommendation_event``. Failures
        are logged and reported as ``False`` so they never break the page or
        request the event was attached to.
        """
        try:
            self.track_recommendation_event(**kwargs)
            return True
        except Exception as e:
            logger.warning(f"Recommendation event dropped: {e}", exc_info=True)
            return False

    def get_recommendation_stats(
        self,
        product_id: str,
        recommended_product_id: str,
        recommendation_type: RecommendationType,
    ) -> Optional[RecommendationStats]:
        """Return the stats row for a key, or None if nothing was tracked."""
        key = StatsKey(product_id, recommended_product_id, RecommendationType(recommendation_type))
        return self.store.find_recommendation_stats(key)
