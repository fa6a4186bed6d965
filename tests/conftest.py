"""Shared fixtures for the BasketRec test suite.

Stores are built from small, hand-written baskets so every expected score can
be worked out by hand.
"""

import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from basketrec.api.metrics import metrics_service
from basketrec.recommender.models import Order, OrderItem, Product
from basketrec.recommender.store import FrameStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def make_product(
    product_id: str,
    category: Optional[str] = None,
    is_active: bool = True,
    age_days: int = 0,
    image: Optional[str] = None,
    price: str = "10.00",
) -> Product:
    """Build a product; a smaller ``age_days`` means a newer product."""
    return Product(
        id=product_id,
        name=f"Product {product_id}",
        image=image,
        price=Decimal(price),
        category=category,
        stock=10,
        is_active=is_active,
        created_at=BASE_TIME - timedelta(days=age_days),
    )


def make_store(
    products: List[Product],
    baskets: Sequence[Sequence[str]] = (),
    users: Optional[Sequence[str]] = None,
) -> FrameStore:
    """Build a store with one order per basket.

    Args:
        products: Catalog.
        baskets: Product ids of each order, in order.
        users: Buyer of each order; defaults to a distinct buyer per order.
    """
    orders = []
    order_items = []
    for idx, basket in enumerate(baskets, start=1):
        order_id = f"o{idx:03d}"
        user_id = users[idx - 1] if users else f"buyer-{idx:03d}"
        orders.append(Order(id=order_id, user_id=user_id, created_at=BASE_TIME + timedelta(minutes=idx)))
        order_items.extend(OrderItem(order_id=order_id, product_id=pid) for pid in basket)

    return FrameStore.from_records(products, orders, order_items)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def store_factory():
    return make_store


@pytest.fixture
def household_store() -> FrameStore:
    """Store with one known buyer, "alice", who bought X and Y together.

    X appears in 7 orders (C and D each in 3 of them), Y in 4 orders (C in 3
    of them), so seen from X: C = D = 3/7, and seen from Y: C = 3/4.
    """
    products = [make_product(pid, category="Energy", age_days=i) for i, pid in enumerate(["X", "Y", "C", "D"])]
    products.append(make_product("Z", category="Snacks", age_days=10))
    baskets = [["X", "Y"]] + [["X", "C"]] * 3 + [["X", "D"]] * 3 + [["Y", "C"]] * 3 + [["Z"]]
    users = ["alice"] + [f"buyer-{i:03d}" for i in range(1, 10)] + ["bob"]
    return make_store(products, baskets, users)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with empty API metrics."""
    metrics_service.reset()
    yield
    metrics_service.reset()
