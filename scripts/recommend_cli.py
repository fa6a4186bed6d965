"""CLI script for getting product recommendations.

Useful for testing and evaluation. Loads the store from CSV exports or a
snapshot, runs one strategy and prints the ranked results.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from basketrec.exceptions import BasketRecException
from basketrec.recommender.models import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MIN_CO_OCCURRENCE,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_MIN_SCORE,
    CoOccurrenceOptions,
    RecommendationOptions,
    RecommendationResult,
)
from basketrec.recommender.store import FrameStore, load_snapshot
from basketrec.recommender.strategies import RecommendationEngine

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)

STRATEGIES = ["fbt", "personalized", "category", "cart", "popular"]


def get_recommendations(
    engine: RecommendationEngine,
    strategy: str,
    key: Optional[str] = None,
    cart: Optional[List[str]] = None,
    limit: int = DEFAULT_LIMIT,
    min_score: float = DEFAULT_MIN_SCORE,
    min_co_occurrence: int = DEFAULT_MIN_CO_OCCURRENCE,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    max_results: int = DEFAULT_MAX_RESULTS,
    exclude: Optional[List[str]] = None,
) -> List[RecommendationResult]:
    """Run one strategy.

    Args:
        engine: Engine bound to a loaded store
        strategy: One of "fbt", "personalized", "category", "cart", "popular"
        key: Product id (fbt), user id (personalized) or category (category)
        cart: Cart product ids (cart)
        limit: Number of recommendations for list strategies
        min_score: Confidence floor for personalized
        min_co_occurrence: Co-occurrence threshold for fbt
        min_confidence: Confidence floor for fbt
        max_results: Result cap for fbt
        exclude: Product ids that must not be returned

    Returns:
        Ranked recommendations
    """
    options = RecommendationOptions(limit=limit, min_score=min_score, exclude_product_ids=exclude or [])

    if strategy == "fbt":
        return engine.get_frequently_bought_together(
            key,
            CoOccurrenceOptions(
                min_co_occurrence=min_co_occurrence,
                min_confidence=min_confidence,
                max_results=max_results,
            ),
        )
    if strategy == "personalized":
        return engine.get_personalized_recommendations(key, options)
    if strategy == "category":
        return engine.get_category_based_recommendations(key, options)
    if strategy == "cart":
        return engine.get_cart_recommendations(cart or [], options)
    if strategy == "popular":
        return engine.get_popular_products(options)

    raise ValueError(f"Unknown strategy: {strategy}")


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations from storefront data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend_cli.py fbt prod-0001
  python scripts/recommend_cli.py personalized user-007 --limit 5
  python scripts/recommend_cli.py category Energy
  python scripts/recommend_cli.py cart --cart prod-0001 prod-0002
  python scripts/recommend_cli.py popular --exclude prod-0003
        """
    )

    parser.add_argument("strategy", choices=STRATEGIES, help="Recommendation strategy")
    parser.add_argument("key", nargs="?", default=None, help="Product id, user id or category")
    parser.add_argument("--cart", nargs="*", default=[], help="Cart product ids (cart strategy)")
    parser.add_argument("--exclude", nargs="*", default=[], help="Product ids to exclude")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Number of results (default: {DEFAULT_LIMIT})")
    parser.add_argument("--min-score", type=float, default=DEFAULT_MIN_SCORE)
    parser.add_argument("--min-co-occurrence", type=int, default=DEFAULT_MIN_CO_OCCURRENCE)
    parser.add_argument("--min-confidence", type=float, default=DEFAULT_MIN_CONFIDENCE)
    parser.add_argument("--max-results", type=int, default=DEFAULT_MAX_RESULTS)
    parser.add_argument("--data-dir", type=str, default="data", help="Directory with CSV exports (default: data)")
    parser.add_argument("--snapshot", type=str, default=None, help="Snapshot file; overrides --data-dir")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    if args.strategy in ("fbt", "personalized", "category") and not args.key:
        parser.error(f"strategy '{args.strategy}' needs a key")

    try:
        store = load_snapshot(args.snapshot) if args.snapshot else FrameStore.from_csv_dir(args.data_dir)
        recommendations = get_recommendations(
            RecommendationEngine(store),
            args.strategy,
            key=args.key,
            cart=args.cart,
            limit=args.limit,
            min_score=args.min_score,
            min_co_occurrence=args.min_co_occurrence,
            min_confidence=args.min_confidence,
            max_results=args.max_results,
            exclude=args.exclude,
        )
    except BasketRecException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"\nRecommendations ({args.strategy}{' ' + args.key if args.key else ''}):")
    if not recommendations:
        print("  No recommendations")
    for rank, rec in enumerate(recommendations, start=1):
        print(f"  {rank:>2}. {rec.id:<12} {rec.name:<24} {rec.category_label:<14} {rec.price:>8.2f}  score={rec.score:.3f}")

    print()


if __name__ == "__main__":
    main()
