"""API endpoints for the matching engine."""

import asyncio

import structlog
from fastapi import APIRouter, Depends

from swapgraph.engine import MatchingEngine, get_default_engine
from swapgraph.models.proposal import MatchingRequest, MatchingResult

logger = structlog.get_logger()

router = APIRouter()


def get_engine() -> MatchingEngine:
    """Dependency provider for the matching engine.

    Override this in tests to inject a differently configured engine:
        app.dependency_overrides[get_engine] = lambda: MatchingEngine(config)

    Returns:
        The engine used to run matching requests.
    """
    return get_default_engine()


@router.post("/matching/runs", response_model_exclude_none=True)
async def run_matching_endpoint(
    request: MatchingRequest,
    engine: MatchingEngine = Depends(get_engine),
) -> MatchingResult:
    """Run one matching pass over the posted intents.

    The run is CPU-bound, so it executes in a worker thread to keep the
    event loop responsive.

    Error Handling:
        - Invalid request schema: 422 Validation Error (Pydantic)
        - Unpriced asset on a candidate cycle: 422 with the asset id
    """
    logger.info(
        "received_matching_request",
        intents=len(request.intents),
        asset_values=len(request.asset_values_usd),
        edge_intents=len(request.edge_intents),
        now_iso=request.now_iso,
    )

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, engine.run, request)

    logger.info(
        "returning_proposals",
        proposals=len(result.proposals),
        candidates=result.stats.candidate_proposals,
    )
    return result
