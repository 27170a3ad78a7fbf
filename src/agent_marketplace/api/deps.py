"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the orchestrator,
the settlement engine, and configuration. Tests swap them through
app.dependency_overrides.
"""

from __future__ import annotations

from fastapi import Depends, Request

from agent_marketplace.config import Settings, get_settings
from agent_marketplace.infrastructure.chain import ChainClient
from agent_marketplace.services.orchestrator import Orchestrator, build_orchestrator
from agent_marketplace.services.settlement_service import SettlementEngine


def get_app_settings() -> Settings:
    return get_settings()


def get_orchestrator(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Orchestrator:
    """Provide the orchestrator built at startup, or a fresh one outside the lifespan."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = build_orchestrator(settings)
    return orchestrator


def get_settlement_engine(settings: Settings = Depends(get_app_settings)) -> SettlementEngine:
    """Provide a settlement engine for payment verification by the local agents."""
    chain = ChainClient(
        rpc_url=settings.goat_rpc_url,
        chain_id=settings.chain_id,
        token_address=settings.usdt_address,
    )
    return SettlementEngine(settings, chain=chain)
