"""
Application entrypoint: service container lifecycle, middleware and routers.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from castops.config import settings
from castops.dependencies import ServiceContainer
from castops.infrastructure.observability.logging import get_logger, log_request, setup_logging
from castops.middleware.request_context import RequestContextMiddleware
from castops.routes import bookings, health, orders, reconciliation

# Setup logging before creating the app
setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service container on startup and close it on shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        app.state.container = await ServiceContainer.create(settings)
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        raise

    yield

    logger.info("Application shutting down")
    try:
        await app.state.container.close()
    except Exception as e:
        logger.error("Error closing services", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Casting Operations",
    description="Casting order and booking workflow with Slack, Calendar and Notion sync",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(orders.router)
app.include_router(bookings.router)
app.include_router(reconciliation.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
