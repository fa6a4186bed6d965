"""Data access for the recommendation core.

``DataAccessPort`` lists every read and write the strategies and the tracker
need. ``FrameStore`` implements it in memory on top of pandas DataFrames and
a sparse order x product incidence matrix, which is enough to serve a
storefront export or to drive the test suite. A database-backed adapter only
has to provide the same methods.
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import joblib
import numpy as np
import pandas as pd

from basketrec.exceptions import StoreLoadError, StoreNotFoundError
from basketrec.recommender.models import (
    EventType,
    Order,
    OrderItem,
    Product,
    ProductCount,
    RecommendationEvent,
    RecommendationStats,
    RecommendationType,
    StatsKey,
)
from basketrec.recommender.utils import (
    ORDER_COLUMNS,
    ORDER_ITEM_COLUMNS,
    PRODUCT_COLUMNS,
    build_incidence_matrix,
    load_csv_exports,
)

# Configure module logger
logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

_COUNTER_FIELDS = {
    EventType.VIEW: "view_count",
    EventType.CLICK: "click_count",
    EventType.CONVERSION: "conversion_count",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_key(key: StatsKey) -> StatsKey:
    return StatsKey(
        str(key.product_id),
        str(key.recommended_product_id),
        RecommendationType(key.recommendation_type),
    )


class DataAccessPort(Protocol):
    """Storage capabilities the recommendation core depends on."""

    def find_product_by_id(self, product_id: str) -> Optional[Product]: ...

    def find_products_by_ids(self, product_ids: Sequence[str], active_only: bool = True) -> List[Product]: ...

    def find_products_by_category(
        self,
        category: str,
        exclude_ids: Sequence[str],
        limit: int,
        order_by_created_desc: bool = True,
    ) -> List[Product]: ...

    def find_recent_active_products(self, exclude_ids: Sequence[str], limit: int) -> List[Product]: ...

    def find_order_ids_containing_product(self, product_id: str) -> List[str]: ...

    def count_co_occurring_products(
        self,
        order_ids: Sequence[str],
        exclude_product_id: str,
        min_count: int,
        limit: int,
    ) -> List[ProductCount]: ...

    def count_product_occurrences_globally(self, limit: int) -> List[ProductCount]: ...

    def find_order_ids_for_user(self, user_id: str) -> List[str]: ...

    def find_product_ids_in_orders(self, order_ids: Sequence[str]) -> List[str]: ...

    def find_recommendation_stats(self, key: StatsKey) -> Optional[RecommendationStats]: ...

    def upsert_recommendation_stats(self, key: StatsKey, event_type: EventType) -> RecommendationStats: ...

    def insert_recommendation_event(self, event: RecommendationEvent) -> None: ...


def _optional(value: Any) -> Any:
    """Map pandas missing markers to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _row_to_product(row: Dict[str, Any]) -> Product:
    created_at = row["created_at"]
    if isinstance(created_at, pd.Timestamp):
        created_at = created_at.to_pydatetime()

    return Product(
        id=str(row["id"]),
        name=str(row["name"]),
        image=_optional(row.get("image")),
        price=str(row["price"]),
        category=_optional(row.get("category")),
        stock=int(_optional(row.get("stock")) or 0),
        is_active=bool(row["is_active"]),
        created_at=created_at,
    )


class FrameStore:
    """In-memory ``DataAccessPort`` backed by pandas and scipy.

    Catalog and order data are read-only after construction. Recommendation
    events and stats are the only mutable state; stats updates run under a
    lock so each upsert is a single atomic read-modify-write.
    """

    def __init__(
        self,
        products: pd.DataFrame,
        orders: pd.DataFrame,
        order_items: pd.DataFrame,
        stats: Optional[Iterable[RecommendationStats]] = None,
        events: Optional[Iterable[RecommendationEvent]] = None,
    ):
        """Initialize the store.

        Args:
            products: Frame with the columns in ``PRODUCT_COLUMNS``.
            orders: Frame with the columns in ``ORDER_COLUMNS``.
            order_items: Frame with the columns in ``ORDER_ITEM_COLUMNS``.
            stats: Previously aggregated stats rows, e.g. from a snapshot.
            events: Previously recorded events, e.g. from a snapshot.
        """
        self.products = products.reset_index(drop=True)
        self.orders = orders.reset_index(drop=True)
        self.order_items = order_items.reset_index(drop=True)

        self._products_by_id: Dict[str, Product] = {
            product.id: product
            for product in (_row_to_product(row) for row in self.products.to_dict("records"))
        }

        self._matrix, self._order_idx, self._product_idx = build_incidence_matrix(self.order_items)
        self._matrix_csc = self._matrix.tocsc()
        self._idx_to_order = {idx: oid for oid, idx in self._order_idx.items()}
        self._idx_to_product = {idx: pid for pid, idx in self._product_idx.items()}

        self._lock = threading.Lock()
        self._stats: Dict[StatsKey, RecommendationStats] = {s.key: s for s in (stats or [])}
        self._events: List[RecommendationEvent] = list(events or [])

        logger.info(
            "FrameStore ready",
            extra={
                "num_products": len(self._products_by_id),
                "num_orders": len(self.orders),
                "num_order_items": len(self.order_items),
            },
        )

    @classmethod
    def from_records(
        cls,
        products: Iterable[Product],
        orders: Iterable[Order] = (),
        order_items: Iterable[OrderItem] = (),
    ) -> "FrameStore":
        """Build a store from model instances."""
        product_rows = [p.model_dump() for p in products]
        return cls(
            products=pd.DataFrame(product_rows, columns=PRODUCT_COLUMNS),
            orders=pd.DataFrame([o.model_dump() for o in orders], columns=ORDER_COLUMNS),
            order_items=pd.DataFrame([i.model_dump() for i in order_items], columns=ORDER_ITEM_COLUMNS),
        )

    @classmethod
    def from_csv_dir(cls, data_dir: str) -> "FrameStore":
        """Build a store from the CSV exports in ``data_dir``."""
        products, orders, order_items = load_csv_exports(data_dir)
        try:
            return cls(products, orders, order_items)
        except Exception as e:
            raise StoreLoadError(data_dir, e) from e

    # Catalog

    def find_product_by_id(self, product_id: str) -> Optional[Product]:
        return self._products_by_id.get(product_id)

    def find_products_by_ids(self, product_ids: Sequence[str], active_only: bool = True) -> List[Product]:
        found = []
        for product_id in dict.fromkeys(product_ids):
            product = self._products_by_id.get(product_id)
            if product is None or (active_only and not product.is_active):
                continue
            found.append(product)
        return found

    def _active_frame(self, exclude_ids: Sequence[str]) -> pd.DataFrame:
        df = self.products
        return df[df["is_active"].astype(bool) & ~df["id"].isin(list(exclude_ids))]

    def _newest_first(self, df: pd.DataFrame, limit: int) -> List[Product]:
        df = df.sort_values(["created_at", "id"], ascending=[False, True])
        return [self._products_by_id[pid] for pid in df["id"].head(limit)]

    def find_products_by_category(
        self,
        category: str,
        exclude_ids: Sequence[str],
        limit: int,
        order_by_created_desc: bool = True,
    ) -> List[Product]:
        df = self._active_frame(exclude_ids)
        df = df[df["category"] == category]
        if order_by_created_desc:
            return self._newest_first(df, limit)
        return [self._products_by_id[pid] for pid in df["id"].head(limit)]

    def find_recent_active_products(self, exclude_ids: Sequence[str], limit: int) -> List[Product]:
        return self._newest_first(self._active_frame(exclude_ids), limit)

    # Orders

    def find_order_ids_containing_product(self, product_id: str) -> List[str]:
        col = self._product_idx.get(product_id)
        if col is None:
            return []
        rows = self._matrix_csc[:, col].nonzero()[0]
        return [self._idx_to_order[int(row)] for row in sorted(rows)]

    def find_order_ids_for_user(self, user_id: str) -> List[str]:
        df = self.orders
        return df.loc[df["user_id"] == user_id, "id"].tolist()

    def find_product_ids_in_orders(self, order_ids: Sequence[str]) -> List[str]:
        df = self.order_items
        return df.loc[df["order_id"].isin(list(order_ids)), "product_id"].tolist()

    def _rank_counts(self, counts: np.ndarray, min_count: int, limit: int, exclude: Optional[str] = None) -> List[ProductCount]:
        ranked = [
            ProductCount(self._idx_to_product[int(idx)], int(counts[idx]))
            for idx in np.flatnonzero(counts > min_count)
            if self._idx_to_product[int(idx)] != exclude
        ]
        ranked.sort(key=lambda pc: (-pc.count, pc.product_id))
        return ranked[:limit]

    def count_co_occurring_products(
        self,
        order_ids: Sequence[str],
        exclude_product_id: str,
        min_count: int,
        limit: int,
    ) -> List[ProductCount]:
        """Count other products in the given orders, keeping counts > ``min_count``."""
        rows = sorted({self._order_idx[oid] for oid in order_ids if oid in self._order_idx})
        if not rows:
            return []
        counts = np.asarray(self._matrix[rows].sum(axis=0)).ravel()
        return self._rank_counts(counts, min_count, limit, exclude=exclude_product_id)

    def count_product_occurrences_globally(self, limit: int) -> List[ProductCount]:
        if self._matrix.shape[0] == 0:
            return []
        counts = np.asarray(self._matrix.sum(axis=0)).ravel()
        return self._rank_counts(counts, 0, limit)

    # Recommendation events and stats

    def find_recommendation_stats(self, key: StatsKey) -> Optional[RecommendationStats]:
        key = _normalize_key(key)
        with self._lock:
            return self._stats.get(key)

    def upsert_recommendation_stats(self, key: StatsKey, event_type: EventType) -> RecommendationStats:
        """Increment the counter for ``event_type``, creating the row if needed."""
        key = _normalize_key(key)
        field = _COUNTER_FIELDS[EventType(event_type)]
        now = _utcnow()

        with self._lock:
            existing = self._stats.get(key)
            if existing is None:
                updated = RecommendationStats(
                    id=f"{key.recommendation_type.value}_{key.product_id}_{key.recommended_product_id}",
                    product_id=key.product_id,
                    recommended_product_id=key.recommended_product_id,
                    recommendation_type=key.recommendation_type,
                    created_at=now,
                    last_updated_at=now,
                    **{field: 1},
                )
            else:
                updated = existing.model_copy(
                    update={field: getattr(existing, field) + 1, "last_updated_at": now}
                )
            self._stats[key] = updated

        return updated

    def insert_recommendation_event(self, event: RecommendationEvent) -> None:
        with self._lock:
            self._events.append(event)

    def restore_tracking(
        self,
        stats: Iterable[RecommendationStats],
        events: Iterable[RecommendationEvent],
    ) -> None:
        """Carry tracked state over from another store, e.g. across a reload.

        Stats rows replace any row with the same key; events not already
        present are appended.
        """
        with self._lock:
            for row in stats:
                self._stats[_normalize_key(row.key)] = row
            known_ids = {event.id for event in self._events}
            self._events.extend(event for event in events if event.id not in known_ids)

    @property
    def events(self) -> List[RecommendationEvent]:
        with self._lock:
            return list(self._events)

    @property
    def stats(self) -> List[RecommendationStats]:
        with self._lock:
            return list(self._stats.values())

    def summary(self) -> Dict[str, int]:
        return {
            "num_products": len(self._products_by_id),
            "num_orders": len(self.orders),
            "num_order_items": len(self.order_items),
            "num_events": len(self.events),
            "num_stats": len(self.stats),
        }


def save_snapshot(store: FrameStore, path: str) -> Path:
    """Save the store's frames, stats and events to a joblib file.

    Args:
        store: Store to persist.
        path: Destination file; parent directories are created.

    Returns:
        Path of the written snapshot.
    """
    snapshot_path = Path(path)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "version": SNAPSHOT_VERSION,
        "products": store.products,
        "orders": store.orders,
        "order_items": store.order_items,
        "stats": [s.model_dump() for s in store.stats],
        "events": [e.model_dump() for e in store.events],
    }
    joblib.dump(payload, snapshot_path)
    logger.info(f"Saved store snapshot to {snapshot_path}")

    return snapshot_path


def load_snapshot(path: str) -> FrameStore:
    """Load a store previously written by ``save_snapshot``.

    Raises:
        StoreNotFoundError: If the snapshot file does not exist.
        StoreLoadError: If the file is not a readable snapshot.
    """
    snapshot_path = Path(path)
    if not snapshot_path.exists():
        raise StoreNotFoundError(path)

    logger.info(f"Loading store snapshot from {snapshot_path}")

    try:
        payload = joblib.load(snapshot_path)
        if payload.get("version") != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {payload.get('version')}")
        return FrameStore(
            products=payload["products"],
            orders=payload["orders"],
            order_items=payload["order_items"],
            stats=[RecommendationStats(**row) for row in payload["stats"]],
            events=[RecommendationEvent(**row) for row in payload["events"]],
        )
    except Exception as e:
        raise StoreLoadError(path, e) from e
