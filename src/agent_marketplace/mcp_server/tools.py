"""MCP Tool definitions for the Agent Marketplace.

These tools expose agent discovery and hiring via the Model Context Protocol,
allowing AI agents to find other agents and pay them programmatically.

Tools:
    - discover_agents: Browse agents from the ERC-8004 registry
    - get_agent: Get details of a single agent
    - hire_agent: Pay an agent through x402 and run a task on it

The MCP server is mounted into FastAPI at /mcp via app.mount().
Each tool builds its own orchestrator (no FastAPI Depends available).
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from agent_marketplace.config import get_settings
from agent_marketplace.domain.exceptions import MarketplaceError
from agent_marketplace.domain.models import Payer
from agent_marketplace.logging_config import get_logger
from agent_marketplace.services.orchestrator import Orchestrator, build_orchestrator
from agent_marketplace.services.registry_service import filter_agents

logger = get_logger(__name__)

# Initialize the MCP server
# This will be mounted into the FastAPI app in main.py
mcp = FastMCP(
    "Agent Marketplace",
    json_response=True,
)


def _get_orchestrator() -> Orchestrator:
    """Create an orchestrator for MCP tool context (not in FastAPI request)."""
    return build_orchestrator(get_settings())


def _error(exc: Exception) -> dict:
    if isinstance(exc, MarketplaceError):
        return {"error": exc.message, "code": exc.code}
    return {"error": str(exc)}


@mcp.tool()
async def discover_agents(capability: str = "", x402_only: bool = False) -> dict:
    """Browse available agents on the GOAT Network ERC-8004 registry.

    Args:
        capability: Keyword matched against agent name or description.
        x402_only: Only return agents that accept x402 payments.

    Returns:
        The matching agents and whether they came from the registry or the
        built-in fallback list.
    """
    try:
        orchestrator = _get_orchestrator()
        snapshot = await orchestrator.registry.list_agents()
        agents = filter_agents(snapshot.agents, capability or None, x402_only)
        return {
            "agents": [agent.to_dict() for agent in agents],
            "count": len(agents),
            "source": snapshot.source.value,
        }
    except Exception as exc:
        logger.exception("mcp.discover_agents.error")
        return _error(exc)


@mcp.tool()
async def get_agent(agent_id: int) -> dict:
    """Get details of a specific agent by ERC-8004 token ID.

    Args:
        agent_id: ERC-8004 token ID.

    Returns:
        Agent details including price, merchant id and endpoint.
    """
    try:
        orchestrator = _get_orchestrator()
        agent = await orchestrator.registry.get_agent(agent_id)
        return agent.to_dict()
    except MarketplaceError as exc:
        logger.warning("mcp.get_agent.error", agent_id=agent_id, error=exc.message)
        return _error(exc)
    except Exception as exc:
        logger.exception("mcp.get_agent.error")
        return _error(exc)


@mcp.tool()
async def hire_agent(
    agent_id: int,
    task: str,
    input: str,
    budget_usdt: str = "0.10",
    target_language: str = "",
    caller_private_key: str = "",
    caller_address: str = "",
) -> dict:
    """Hire an agent and pay it via x402 on GOAT Testnet3.

    WARNING: caller_private_key travels inside the tool call. Only pass it to
    a trusted deployment over HTTPS.

    Args:
        agent_id: ERC-8004 token ID of the agent to hire.
        task: Task type: 'summarize', 'translate', or 'explain-code'.
        input: The text or code input for the agent.
        budget_usdt: Maximum price you accept, in USDT.
        target_language: Target language for translation tasks.
        caller_private_key: Your wallet key; you pay for the hire. Leave
            empty to have the marketplace wallet pay.
        caller_address: Your public address, reported back as the payer.

    Returns:
        job_id, the agent's result, and the payment's tx_hash, order_id and
        explorer_url.
    """
    if caller_private_key:
        payer = Payer.self_funded(caller_private_key, caller_address or None)
    else:
        payer = Payer(caller_address=caller_address or None)

    try:
        orchestrator = _get_orchestrator()
        hired = await orchestrator.hire(
            agent_id=agent_id,
            task=task,
            input_text=input,
            budget_usdt=budget_usdt or None,
            target_language=target_language or None,
            payer=payer,
        )
    except MarketplaceError as exc:
        logger.warning("mcp.hire_agent.error", agent_id=agent_id, error=exc.message)
        return _error(exc)
    except Exception as exc:
        logger.exception("mcp.hire_agent.error")
        return _error(exc)

    if hired.error and hired.payment is None:
        return {"error": hired.error, "code": hired.error_code}
    return hired.to_dict()
