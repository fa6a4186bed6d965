"""BasketRec: order-history driven product recommendations.

This package provides the recommendation core of a storefront: co-occurrence
analysis over order history, the recommendation strategies built on top of it,
and the event tracker that feeds recommendation analytics.

Modules:
    recommender: Data model, data access port, analyzer, strategies and tracker
    api: FastAPI application exposing the recommendation call contract
"""

__version__ = "0.1.0"
