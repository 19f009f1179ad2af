"""
PriceBot - query understanding for an electrical cable distributor
FastAPI backend: free text in, structured Query out
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from config import runtime_config
from llm.cost_hooks import CostLogHook
from llm.orchestrator import LLMOrchestrator
from logging_config import setup_logging
from routers import admin_llm, query
from services.database import close_database, get_database
from services.http_client import RetryableClient
from services.persistence import PersistenceService
from services.pricelists import PriceListService

setup_logging(runtime_config.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown"""
    logger.info("PriceBot starting up")

    # --- Persistence (failures while PostgreSQL is down are logged per query) ---
    db = await get_database()
    persistence = PersistenceService(db) if db.enabled else None
    if not db.available:
        logger.warning("PostgreSQL unavailable, conversation tracking and cost logging degraded")

    # --- Price-list catalog ---
    pricelists = PriceListService.from_file(runtime_config.pricelists_path)
    logger.info(f"Price-list catalog: {pricelists.count} entries")

    # --- Providers ---
    client = RetryableClient(
        timeout=runtime_config.llm_timeout,
        max_retries=runtime_config.http_max_retries,
        backoff=runtime_config.http_retry_backoff,
    )
    cost_hook = CostLogHook()
    orchestrator = LLMOrchestrator.from_config(
        runtime_config,
        client,
        persistence=persistence,
        pricelist_service=pricelists,
        cost_hook=cost_hook,
    )

    app.state.orchestrator = orchestrator
    app.state.persistence = persistence
    app.state.cost_hook = cost_hook
    app.state.http_client = client

    routing = runtime_config.routing
    logger.info(f"PriceBot is ready (primary={routing.primary.value}, secondary={routing.secondary.value})")
    yield

    # Shutdown
    if cost_hook.pending:
        logger.info(f"Waiting for {cost_hook.pending} cost log writes")
    await cost_hook.drain()
    await client.aclose()
    await close_database()
    logger.info("PriceBot signing off")


app = FastAPI(
    title="PriceBot",
    description="Query understanding for cable and wire orders",
    version="1.0.0",
    lifespan=lifespan,
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

app.include_router(query.router)
app.include_router(admin_llm.router)


@app.get("/health")
async def health():
    """Health check - database status and provider routing."""
    db = await get_database()
    database = await db.health_check()
    routing = runtime_config.routing
    return {
        "status": "ok" if database.get("status") == "connected" else "degraded",
        "database": database,
        "llm": {"primary": routing.primary.value, "secondary": routing.secondary.value},
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
