"""FastAPI application module for BasketRec.

This module contains the FastAPI application, route handlers, and API
endpoints exposing the recommendation strategies and the event tracker.
"""
