"""FastAPI application for the swapgraph matching engine.

The service only computes: callers fetch intents and valuations and persist
or publish the returned proposals themselves.
"""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from swapgraph import __version__
from swapgraph.api.endpoints import router
from swapgraph.valuation import MissingAssetValueError

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("SWAPGRAPH_HOST", "0.0.0.0")
PORT = int(os.environ.get("SWAPGRAPH_PORT", "8000"))
DEBUG = os.environ.get("SWAPGRAPH_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (10 MB)
MAX_REQUEST_SIZE = 10 * 1024 * 1024

app = FastAPI(
    title="SwapGraph Matching Engine",
    description="Matches swap intents into disjoint multi-party exchange cycles",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(MissingAssetValueError)
async def missing_asset_value_handler(
    request: Request, exc: MissingAssetValueError
) -> JSONResponse:
    """An unpriced asset fails the whole run; report which one."""
    return JSONResponse(status_code=422, content={"detail": str(exc), "asset_id": exc.asset_id})


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok"}


def configure_logging(debug: bool = DEBUG) -> None:
    """Configure structlog for the server process."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
    )


def run() -> None:
    """Run the matching API server.

    Configuration via environment variables:
    - SWAPGRAPH_HOST: Host to bind to (default: 0.0.0.0)
    - SWAPGRAPH_PORT: Port to bind to (default: 8000)
    - SWAPGRAPH_DEBUG: Enable debug/reload mode (default: false)
    - SWAPGRAPH_* matching defaults, see MatchingConfig.from_env
    """
    configure_logging(DEBUG)
    uvicorn.run(
        "swapgraph.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
