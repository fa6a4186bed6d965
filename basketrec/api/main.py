"""FastAPI application main module.

This module defines the FastAPI application instance for the BasketRec
service: health and status endpoints, exception handlers, request logging,
and the recommendation router.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from basketrec.api import deps
from basketrec.api.logging_config import RequestLoggingMiddleware, setup_logging
from basketrec.api.metrics import metrics_service
from basketrec.api.routes import recommend
from basketrec.config import get_settings
from basketrec.exceptions import BasketRecException

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Apply settings and install JSON logging when the server starts."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    app.title = settings.APP_NAME
    app.version = settings.VERSION
    logger.info(f"{settings.APP_NAME} {settings.VERSION} starting")
    yield


# Create FastAPI application instance
app = FastAPI(
    title="BasketRec API",
    description="Order-history driven product recommendation service",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(recommend.router)


@app.exception_handler(BasketRecException)
async def basketrec_exception_handler(request: Request, exc: BasketRecException) -> JSONResponse:
    """Render BasketRec errors with their status code and details."""
    logger.warning(
        exc.message,
        extra={"path": str(request.url.path), "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "ValidationError",
            "message": "Invalid request parameters",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Returns:
        Dictionary with status key set to "ok".

    Example:
        >>> response = client.get("/ping")
        >>> assert response.json() == {"status": "ok"}
    """
    return {"status": "ok"}


@app.get("/status")
def store_status() -> Dict[str, Any]:
    """Report whether the store is loaded and how much data it holds.

    Does not trigger a load.
    """
    if not deps.is_store_loaded():
        return {"store_loaded": False, "num_products": 0, "num_orders": 0, "num_order_items": 0}

    summary = deps.load_store_if_needed().summary()
    return {
        "store_loaded": True,
        "num_products": summary["num_products"],
        "num_orders": summary["num_orders"],
        "num_order_items": summary["num_order_items"],
    }


@app.get("/metrics")
def metrics() -> Dict[str, Any]:
    return metrics_service.get_metrics()


@app.post("/reload-store")
def reload_store() -> Dict[str, str]:
    """Load the catalog and order data again from disk.

    Useful after a new export or snapshot has been written, without
    restarting the server. Recommendation stats and events tracked since
    startup are kept.
    """
    logger.info("Reloading store...")
    deps.reload_store()
    return {"status": "Store reloaded successfully"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "basketrec.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
