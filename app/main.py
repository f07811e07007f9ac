"""
FastAPI application for the Transaction Funding Graph engine.

Endpoints:
    POST /graph       — Scan a block height range, return graph summary
    GET  /graph/path  — Reachability query on a built graph
    GET  /health      — System health check
    GET  /metrics     — Processing statistics

Time Complexity: Dominated by block retrieval (see core/graph/graph_builder.py)
Memory: O(V + E) for the cached graph
"""

import logging

from fastapi import FastAPI

from api.routes import router

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")

app = FastAPI(
    title="Transaction Funding Graph",
    description="Builds the transaction funding graph of a block range and answers reachability queries.",
    version="1.0.0",
)

app.include_router(router)
