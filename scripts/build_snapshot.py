"""Command-line interface for building a store snapshot.

Loads the storefront CSV exports, builds the in-memory store (including the
order x product incidence matrix) and saves it as a joblib snapshot that the
API can load at startup via ``BASKETREC_SNAPSHOT_PATH``.

Example:
    Build a snapshot from the default data directory:
        $ python scripts/build_snapshot.py data

    Write it somewhere else:
        $ python scripts/build_snapshot.py data --output snapshots/store.joblib
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from basketrec.exceptions import BasketRecException
from basketrec.recommender.store import FrameStore, save_snapshot

DEFAULT_OUTPUT = "snapshots/store.joblib"

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the script.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise, use INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build a store snapshot from storefront CSV exports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/build_snapshot.py data
  python scripts/build_snapshot.py data --output snapshots/store.joblib --verbose
        """,
    )
    parser.add_argument(
        "data_dir",
        type=str,
        help="Directory with products.csv, orders.csv and order_items.csv",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=DEFAULT_OUTPUT,
        help=f"Snapshot file to write (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_arguments()
    setup_logging(args.verbose)

    logger.info("=" * 60)
    logger.info(f"Building store snapshot from {args.data_dir}")
    logger.info("=" * 60)

    try:
        store = FrameStore.from_csv_dir(args.data_dir)
        path = save_snapshot(store, args.output)
    except BasketRecException as e:
        logger.error(e.message)
        sys.exit(1)

    summary = store.summary()
    logger.info(
        f"Snapshot written to {path}: {summary['num_products']} products, "
        f"{summary['num_orders']} orders, {summary['num_order_items']} order items"
    )


if __name__ == "__main__":
    main()
