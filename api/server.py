"""
Structure Engine API Server - queue processing, cron, dispatch and read-only
structure endpoints.
"""
# ruff: noqa: S104
# S104: Development server binding (guarded by __name__ check)

import logging
import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.structure_router import structure_router
from structure_engine import __version__
from structure_engine.observability import REGISTRY, CorrelationIdMiddleware, configure_logging
from structure_engine.store import get_store

logger = logging.getLogger(__name__)

# FastAPI app initialization
app = FastAPI(
    title="Structure Engine API",
    description="Arc/Phase inference, state snapshots and the structure job queue",
    version=__version__,
)

# CORS middleware - configurable via CORS_ORIGINS env var
# Dev default: allow all origins; Production: set CORS_ORIGINS to comma-separated list
cors_origins_env = os.getenv("CORS_ORIGINS", "*")
cors_origins = (
    ["*"] if cors_origins_env == "*" else [o.strip() for o in cors_origins_env.split(",")]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(structure_router, prefix="/api/structure")


# ==== Startup ====
@app.on_event("startup")
async def init_store_on_startup():
    """Apply the schema and log where the database lives."""
    store = get_store()
    logger.info("=== Structure Engine Startup ===")
    logger.info(f"DB path: {store.db_path}")


@app.get("/api/health")
async def health_check():
    """Liveness probe (no auth, no database access)."""
    return {"status": "healthy", "version": __version__}


@app.get("/metrics")
async def metrics():
    """Prometheus-format metrics endpoint."""
    return PlainTextResponse(REGISTRY.to_prometheus(), media_type="text/plain")


# ==== Main ====


def main():
    """Run the server."""
    configure_logging()
    port = int(os.environ.get("PORT", 8420))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
