"""Generate fake storefront exports for testing and development.

This module creates synthetic catalog and order data in the CSV layout the
recommendation store reads: products.csv, orders.csv and order_items.csv.
Orders are built from a few hidden "bundles" so that co-occurrence analysis
has real signal to find.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_store
        products, orders, order_items = generate_fake_store(num_orders=200)
"""

import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_PRODUCTS = 60
DEFAULT_NUM_ORDERS = 400
DEFAULT_DAYS_BACK = 90
DEFAULT_BUNDLE_SIZE = 3
DEFAULT_SEED = 42
INACTIVE_RATIO = 0.05
MISSING_IMAGE_RATIO = 0.1
CATEGORIES = ["Energy", "Snacks", "Drinks", "Supplements", "Apparel", None]


def generate_fake_store(
    num_users: int = DEFAULT_NUM_USERS,
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_orders: int = DEFAULT_NUM_ORDERS,
    bundle_size: int = DEFAULT_BUNDLE_SIZE,
    end_date: Optional[datetime] = None,
    seed: int = DEFAULT_SEED,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Generate synthetic products, orders and order items.

    Products are grouped into bundles of ``bundle_size``; each order picks a
    bundle, keeps most of its members and sometimes adds a random extra
    product.

    Args:
        num_users: Number of unique users. Must be positive.
        num_products: Number of catalog products. Must be at least
            ``bundle_size``.
        num_orders: Number of orders. Must be positive.
        bundle_size: Products per hidden bundle. Must be at least 2.
        end_date: Latest order/product timestamp. Defaults to now.
        seed: Random seed for reproducibility.

    Returns:
        A tuple of DataFrames:
            - products: id, name, image, price, category, stock, is_active,
              created_at
            - orders: id, user_id, created_at
            - order_items: order_id, product_id

    Raises:
        ValueError: If any size parameter is out of range.
    """
    if num_users <= 0 or num_orders <= 0:
        raise ValueError("num_users and num_orders must be positive")
    if bundle_size < 2 or num_products < bundle_size:
        raise ValueError("bundle_size must be >= 2 and num_products >= bundle_size")

    rng = random.Random(seed)
    end_date = end_date or datetime.now()
    start_date = end_date - timedelta(days=DEFAULT_DAYS_BACK)

    def random_timestamp() -> datetime:
        return start_date + timedelta(
            seconds=rng.randrange(int((end_date - start_date).total_seconds()))
        )

    products = []
    for idx in range(1, num_products + 1):
        products.append({
            "id": f"prod-{idx:04d}",
            "name": f"Product {idx}",
            "image": None if rng.random() < MISSING_IMAGE_RATIO else f"https://cdn.example.com/p/{idx}.jpg",
            "price": f"{rng.uniform(2, 120):.2f}",
            "category": rng.choice(CATEGORIES),
            "stock": rng.randint(0, 500),
            "is_active": rng.random() >= INACTIVE_RATIO,
            "created_at": random_timestamp(),
        })

    product_ids = [p["id"] for p in products]
    bundles = [
        product_ids[i:i + bundle_size]
        for i in range(0, len(product_ids) - bundle_size + 1, bundle_size)
    ]

    orders = []
    order_items = []
    for idx in range(1, num_orders + 1):
        order_id = f"order-{idx:05d}"
        orders.append({
            "id": order_id,
            "user_id": f"user-{rng.randint(1, num_users):03d}",
            "created_at": random_timestamp(),
        })

        basket = [pid for pid in rng.choice(bundles) if rng.random() < 0.8]
        if rng.random() < 0.3:
            basket.append(rng.choice(product_ids))
        if not basket:
            basket.append(rng.choice(product_ids))

        for product_id in dict.fromkeys(basket):
            order_items.append({"order_id": order_id, "product_id": product_id})

    orders_df = pd.DataFrame(orders).sort_values("created_at").reset_index(drop=True)

    return pd.DataFrame(products), orders_df, pd.DataFrame(order_items)


def write_exports(
    products: pd.DataFrame,
    orders: pd.DataFrame,
    order_items: pd.DataFrame,
    output_dir: Path,
) -> None:
    """Write the three frames as CSV exports into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    products.to_csv(output_dir / "products.csv", index=False)
    orders.to_csv(output_dir / "orders.csv", index=False)
    order_items.to_csv(output_dir / "order_items.csv", index=False)


def main() -> None:
    """Generate default data into data/ and print a summary."""
    print(f"Generating {DEFAULT_NUM_ORDERS} fake orders...")
    print(f"Users: {DEFAULT_NUM_USERS}, Products: {DEFAULT_NUM_PRODUCTS}")

    try:
        products, orders, order_items = generate_fake_store()
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(__file__).parent.parent / "data"
    write_exports(products, orders, order_items, data_dir)

    print(f"\nData generated successfully!")
    print(f"Saved to: {data_dir}")
    print(f"\nData summary:")
    print(f"  Products: {len(products)} ({int(products['is_active'].sum())} active)")
    print(f"  Orders: {len(orders)}")
    print(f"  Order items: {len(order_items)}")
    print(f"  Unique buyers: {orders['user_id'].nunique()}")
    print(f"  Date range: {orders['created_at'].min()} to {orders['created_at'].max()}")


if __name__ == "__main__":
    main()
