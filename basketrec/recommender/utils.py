"""Utility functions for the recommendation core.

This module provides the result-construction boundary, score accumulation
shared by the multi-seed strategies, loading of storefront exports from CSV,
and the sparse order/product incidence matrix used for grouped counts.
"""

import logging
import math
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix

from basketrec.exceptions import StoreLoadError, StoreNotFoundError
from basketrec.recommender.models import Product, RecommendationResult

# Configure module logger
logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "https://via.placeholder.com/300"

# Export filenames
PRODUCTS_FILENAME = "products.csv"
ORDERS_FILENAME = "orders.csv"
ORDER_ITEMS_FILENAME = "order_items.csv"

PRODUCT_COLUMNS = ["id", "name", "image", "price", "category", "stock", "is_active", "created_at"]
ORDER_COLUMNS = ["id", "user_id", "created_at"]
ORDER_ITEM_COLUMNS = ["order_id", "product_id"]


def to_recommendation_result(product: Product, score: float) -> RecommendationResult:
    """Build the outgoing record for a product.

    Missing images are replaced by the placeholder and the decimal price is
    parsed to a float. This is the only place those fallbacks are applied.
    """
    return RecommendationResult(
        id=product.id,
        name=product.name,
        image=product.image or PLACEHOLDER_IMAGE,
        price=float(product.price),
        category=product.category,
        score=score,
    )


def rank_scores(scores: Dict[str, float], limit: Optional[int] = None) -> List[Tuple[str, float]]:
    """Sort (product_id, score) pairs by score descending, id ascending on ties."""
    ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


class ScoreAccumulator:
    """Sums candidate scores contributed by several seed products.

    Contributions are kept per candidate and summed with ``math.fsum`` so the
    totals do not depend on the order in which seeds were processed.
    """

    def __init__(self, skip_ids: Iterable[str] = ()):
        self.skip_ids: Set[str] = set(skip_ids)
        self._contributions: Dict[str, List[float]] = defaultdict(list)

    def add(self, results: Iterable[RecommendationResult]) -> None:
        for result in results:
            if result.id in self.skip_ids:
                continue
            self._contributions[result.id].append(result.score)

    def totals(self) -> Dict[str, float]:
        return {pid: math.fsum(parts) for pid, parts in self._contributions.items()}

    def top(self, limit: int) -> List[Tuple[str, float]]:
        return rank_scores(self.totals(), limit)

    def __len__(self) -> int:
        return len(self._contributions)


def resolve_ranked(
    ranked: List[Tuple[str, float]],
    products: Iterable[Product],
    cap: bool = True,
) -> List[RecommendationResult]:
    """Join ranked ids to product records and rebuild the final ordering.

    Ids that no longer resolve are dropped silently. Scores are capped at 1.0
    when ``cap`` is set, then results are re-sorted by final score.
    """
    products_by_id = {product.id: product for product in products}
    results = []
    for product_id, score in ranked:
        product = products_by_id.get(product_id)
        if product is None:
            continue
        final_score = min(score, 1.0) if cap else score
        results.append(to_recommendation_result(product, final_score))

    results.sort(key=lambda r: (-r.score, r.id))
    return results


def _read_export(path: Path, columns: List[str], dtype: Dict[str, type]) -> pd.DataFrame:
    if not path.exists():
        raise StoreNotFoundError(str(path))

    try:
        df = pd.read_csv(path, dtype=dtype, keep_default_na=True)
    except Exception as e:
        raise StoreLoadError(str(path), e) from e

    missing = set(columns) - set(df.columns)
    if missing:
        raise StoreLoadError(str(path), ValueError(f"CSV missing required columns: {sorted(missing)}"))

    return df[columns].copy()


def load_csv_exports(data_dir: str) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Load the storefront exports from a directory.

    Args:
        data_dir: Directory containing products.csv, orders.csv and
            order_items.csv.

    Returns:
        A tuple of (products, orders, order_items) DataFrames.

    Raises:
        StoreNotFoundError: If the directory or one of the files is missing.
        StoreLoadError: If a file cannot be parsed or lacks columns.

    Example:
        >>> products, orders, items = load_csv_exports("data")
        >>> print(f"{len(products)} products, {len(orders)} orders")
    """
    data_path = Path(data_dir)
    if not data_path.is_dir():
        raise StoreNotFoundError(data_dir)

    logger.info(f"Loading storefront exports from {data_dir}")

    products = _read_export(
        data_path / PRODUCTS_FILENAME,
        PRODUCT_COLUMNS,
        {"id": str, "name": str, "image": str, "price": str, "category": str},
    )
    orders = _read_export(
        data_path / ORDERS_FILENAME,
        ORDER_COLUMNS,
        {"id": str, "user_id": str},
    )
    order_items = _read_export(
        data_path / ORDER_ITEMS_FILENAME,
        ORDER_ITEM_COLUMNS,
        {"order_id": str, "product_id": str},
    )

    try:
        products["created_at"] = pd.to_datetime(products["created_at"])
        orders["created_at"] = pd.to_datetime(orders["created_at"])
        products["is_active"] = products["is_active"].astype(str).str.lower().isin(["true", "1", "t", "yes"])
        products["stock"] = products["stock"].fillna(0).astype(int)
    except Exception as e:
        raise StoreLoadError(data_dir, e) from e

    logger.info(f"Loaded {len(products)} products")
    logger.info(f"Loaded {len(orders)} orders")
    logger.info(f"Loaded {len(order_items)} order items")

    return products, orders, order_items


def build_incidence_matrix(
    order_items: pd.DataFrame,
    order_col: str = "order_id",
    product_col: str = "product_id",
) -> Tuple[csr_matrix, Dict[str, int], Dict[str, int]]:
    """Convert order line items to a binary sparse order x product matrix.

    A product listed several times in one order still contributes a single 1,
    so column sums count orders rather than quantities.

    Args:
        order_items: DataFrame with one row per order line.
        order_col: Name of the order identifier column.
        product_col: Name of the product identifier column.

    Returns:
        A tuple containing:
            - Sparse CSR matrix of shape (n_orders, n_products)
            - Dictionary mapping order_id to matrix row index
            - Dictionary mapping product_id to matrix column index
    """
    pairs = order_items[[order_col, product_col]].drop_duplicates()

    unique_orders = sorted(pairs[order_col].unique())
    unique_products = sorted(pairs[product_col].unique())

    order_id_to_idx = {order_id: idx for idx, order_id in enumerate(unique_orders)}
    product_id_to_idx = {product_id: idx for idx, product_id in enumerate(unique_products)}

    row_indices = pairs[order_col].map(order_id_to_idx).to_numpy(dtype=np.int64)
    col_indices = pairs[product_col].map(product_id_to_idx).to_numpy(dtype=np.int64)
    data = np.ones(len(pairs), dtype=np.int32)

    matrix = csr_matrix(
        (data, (row_indices, col_indices)),
        shape=(len(unique_orders), len(unique_products)),
        dtype=np.int32,
    )

    logger.debug(
        "Built incidence matrix",
        extra={
            "num_orders": len(unique_orders),
            "num_products": len(unique_products),
            "nnz": int(matrix.nnz),
        },
    )

    return matrix, order_id_to_idx, product_id_to_idx
