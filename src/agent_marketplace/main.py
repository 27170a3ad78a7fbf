"""FastAPI application entry point for the Agent Marketplace.

On startup one Orchestrator is built from configuration and parked on
app.state, so REST requests reuse the same chain client. The registry is
probed once so the log shows which agent universe the process starts with.
The service keeps no other state between calls.

The MCP server is mounted at /mcp so AI agents can discover and hire agents
alongside the REST API at /api/*.

Run with:
    uv run agent-marketplace
    uv run uvicorn agent_marketplace.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from agent_marketplace.config import get_settings
from agent_marketplace.logging_config import get_logger, setup_logging
from agent_marketplace.services.orchestrator import build_orchestrator

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    mode = settings.settlement_mode.value

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
        settlement_mode=mode,
    )
    logger = get_logger(__name__)

    orchestrator = build_orchestrator(settings)
    app.state.orchestrator = orchestrator
    snapshot = await orchestrator.registry.list_agents()

    logger.info(
        "app.started",
        env=settings.app_env,
        host=settings.app_host,
        port=settings.app_port,
        agent_source=snapshot.source.value,
        agents=[agent.name for agent in snapshot.agents],
    )
    if orchestrator.demo_mode:
        logger.warning("app.demo_mode", hint="set GOATX402_API_KEY and AGENT_PRIVATE_KEY to pay agents")

    yield

    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Build the FastAPI app with middleware, REST routers and the MCP mount."""
    settings = get_settings()

    app = FastAPI(
        title="Agent Marketplace",
        description=(
            "Discover AI agents on the ERC-8004 registry, pay them through "
            "x402 on GOAT Network, and orchestrate their work."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    from agent_marketplace.api.middleware import setup_middleware

    setup_middleware(app, settings)

    from agent_marketplace.api.routes.agents import router as agents_router
    from agent_marketplace.api.routes.health import router as health_router
    from agent_marketplace.api.routes.orchestrate import router as orchestrate_router

    for router in (health_router, orchestrate_router, agents_router):
        app.include_router(router)

    # MCP clients connect over SSE at /mcp/sse
    from agent_marketplace.mcp_server.tools import mcp

    app.mount("/mcp", mcp.sse_app())

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn using configured host/port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agent_marketplace.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.is_development,
    )


app = create_app()
