"""Recommendation core for BasketRec.

This module contains the data access port and its in-memory adapter, the
co-occurrence analyzer, the recommendation strategies built on it and the
event tracker that maintains recommendation stats.
"""

from basketrec.recommender.cooccurrence import CoOccurrenceResult, compute_co_occurrence
from basketrec.recommender.models import (
    CoOccurrenceOptions,
    EventType,
    Product,
    RecommendationOptions,
    RecommendationResult,
    RecommendationType,
)
from basketrec.recommender.store import DataAccessPort, FrameStore
from basketrec.recommender.strategies import RecommendationEngine
from basketrec.recommender.tracker import EventTracker

__all__ = [
    "CoOccurrenceOptions",
    "CoOccurrenceResult",
    "DataAccessPort",
    "EventTracker",
    "EventType",
    "FrameStore",
    "Product",
    "RecommendationEngine",
    "RecommendationOptions",
    "RecommendationResult",
    "RecommendationType",
    "compute_co_occurrence",
]
