"""Health check and MCP discovery endpoints.

/health reports how the service will settle payments and whether an agent
registry is configured. /api/mcp describes the MCP server mounted at /mcp
for clients that probe before connecting.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agent_marketplace.api.deps import get_app_settings
from agent_marketplace.config import Settings
from agent_marketplace.schemas.orchestration import HealthResponse

router = APIRouter(tags=["Health"])

MCP_SERVER_NAME = "agent-marketplace"
MCP_PROTOCOL_VERSION = "2024-11-05"
MCP_TOOLS = ("discover_agents", "get_agent", "hire_agent")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the settlement mode and registry configuration.",
)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        settlement_mode=settings.settlement_mode.value,
        registry_configured=bool(settings.erc8004_registry_address),
    )


@router.get("/api/mcp", summary="MCP server discovery")
async def mcp_info() -> dict:
    """Describe the MCP server and the tools it exposes."""
    return {
        "name": MCP_SERVER_NAME,
        "version": "0.1.0",
        "protocol": "MCP",
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "endpoint": "/mcp",
        "tools": list(MCP_TOOLS),
        "description": (
            "Agent marketplace: discover and hire AI agents on GOAT Network "
            "via ERC-8004 + x402"
        ),
    }
