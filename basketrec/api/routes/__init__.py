"""HTTP routes for the BasketRec API."""
