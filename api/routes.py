"""
API Routes — graph build, reachability, health, and metrics endpoints.
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.config import MAX_HEIGHT_SPAN, ConfigError, load_rpc_settings
from core.chain.models import BlockSource, RetrievalError
from core.graph.graph_cache import GraphCache
from services.bitcoin_rpc import BitcoinRpcClient
from services.processing_pipeline import ProcessingService
from utils.metrics import MetricsTracker
from utils.validators import validate_height_range

logger = logging.getLogger(__name__)

router = APIRouter()
metrics_tracker = MetricsTracker()
graph_cache = GraphCache()


class BuildRequest(BaseModel):
    start_height: int
    end_height: int


@lru_cache(maxsize=1)
def _rpc_client() -> BitcoinRpcClient:
    return BitcoinRpcClient(load_rpc_settings())


def get_block_source() -> BlockSource:
    """Block source dependency; overridden in tests."""
    try:
        return _rpc_client()
    except ConfigError as e:
        logger.error("Block source unavailable: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


def get_processing_service(
    block_source: BlockSource = Depends(get_block_source),
) -> ProcessingService:
    return ProcessingService(block_source, cache=graph_cache)


def _check_range(start_height: int, end_height: int) -> None:
    error = validate_height_range(start_height, end_height, max_span=MAX_HEIGHT_SPAN)
    if error:
        raise HTTPException(status_code=400, detail=error)


@router.get("/health")
def health():
    """Return system health status."""
    return {"status": "healthy", "version": "1.0.0"}


@router.get("/metrics")
def metrics():
    """Return statistics from the most recent build."""
    return metrics_tracker.get_metrics()


@router.post("/graph")
def build_graph(
    request: BuildRequest,
    service: ProcessingService = Depends(get_processing_service),
):
    """
    Scan the requested height range and return a summary of the funding graph.
    The graph stays cached for follow-up path queries over the same range.
    """
    _check_range(request.start_height, request.end_height)

    try:
        result = service.process(request.start_height, request.end_height)
    except RetrievalError as e:
        metrics_tracker.record_failure(str(e))
        logger.error("Graph build for %d-%d failed: %s", request.start_height, request.end_height, e)
        raise HTTPException(status_code=502, detail=f"Block retrieval failed: {e}")

    metrics_tracker.record(result["summary"])
    return result


@router.get("/graph/path")
def path_exists(
    start_height: int = Query(...),
    end_height: int = Query(...),
    source: str = Query(..., min_length=1),
    target: str = Query(..., min_length=1),
    service: ProcessingService = Depends(get_processing_service),
):
    """Answer whether ``source`` funds ``target`` through one or more hops."""
    _check_range(start_height, end_height)

    # Query the graph we looked up; never fall through to a rebuild here.
    graph = service.cache.get(start_height, end_height)
    if graph is None:
        raise HTTPException(
            status_code=404,
            detail=f"No graph built for heights {start_height}-{end_height}; POST /graph first.",
        )

    return {
        "source": source,
        "target": target,
        "path_exists": graph.path_exists_between(source.lower(), target.lower()),
    }
