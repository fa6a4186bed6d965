"""Dependencies shared by the API routes.

The store is loaded lazily on first use and cached for the lifetime of the
process. ``reload_store`` swaps in freshly loaded catalog and order data while
keeping the recommendation stats and events tracked so far.
"""

import logging
import threading
from typing import Optional

from basketrec.config import get_settings
from basketrec.recommender.store import FrameStore, load_snapshot
from basketrec.recommender.strategies import RecommendationEngine
from basketrec.recommender.tracker import EventTracker

# Configure module logger
logger = logging.getLogger(__name__)

# Cache for the loaded store
_store_cache: Optional[FrameStore] = None
_store_lock = threading.Lock()


def _load_from_settings() -> FrameStore:
    settings = get_settings()
    if settings.SNAPSHOT_PATH:
        logger.info(f"Loading store from snapshot {settings.SNAPSHOT_PATH}")
        return load_snapshot(settings.SNAPSHOT_PATH)

    logger.info(f"Loading store from {settings.DATA_DIR}")
    return FrameStore.from_csv_dir(settings.DATA_DIR)


def load_store_if_needed() -> FrameStore:
    """Load the store from the snapshot or the CSV exports if not already loaded.

    Raises:
        StoreNotFoundError: If neither the snapshot nor the data directory exist.
        StoreLoadError: If the data cannot be parsed.
    """
    global _store_cache

    if _store_cache is not None:
        return _store_cache

    with _store_lock:
        if _store_cache is None:
            _store_cache = _load_from_settings()
            logger.info("Store loaded successfully")

    return _store_cache


def reload_store() -> FrameStore:
    """Load the data again, keeping tracked stats and events.

    If loading fails the previous store stays in place and the error is
    raised.
    """
    global _store_cache

    with _store_lock:
        fresh = _load_from_settings()
        if _store_cache is not None:
            fresh.restore_tracking(_store_cache.stats, _store_cache.events)
        _store_cache = fresh

    logger.info("Store reloaded", extra=fresh.summary())
    return fresh


def reset_store_cache() -> None:
    global _store_cache
    with _store_lock:
        _store_cache = None


def is_store_loaded() -> bool:
    return _store_cache is not None


def get_store() -> FrameStore:
    return load_store_if_needed()


def get_engine() -> RecommendationEngine:
    return RecommendationEngine(get_store())


def get_tracker() -> EventTracker:
    return EventTracker(get_store())
