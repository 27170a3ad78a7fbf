"""Orchestration REST API route.

Routes:
    POST   /api/orchestrate  — Hire agents for a task and return their outputs

The MCP hire_agent tool in mcp_server/tools.py goes through the same
Orchestrator, so both surfaces pay and invoke agents identically.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agent_marketplace.api.deps import get_orchestrator
from agent_marketplace.logging_config import get_logger
from agent_marketplace.schemas.orchestration import OrchestrateRequest, OrchestrationResponse
from agent_marketplace.services.orchestrator import Orchestrator

router = APIRouter(prefix="/api", tags=["Orchestration"])
logger = get_logger(__name__)


@router.post(
    "/orchestrate",
    response_model=OrchestrationResponse,
    summary="Run a task across hired agents",
    description=(
        "Selects agents for the task, pays each one through x402 and invokes it. "
        "Per-agent failures are reported in outputs; the run itself always succeeds."
    ),
)
async def orchestrate(
    request: OrchestrateRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> OrchestrationResponse:
    """Run one orchestration and return the aggregated result."""
    logger.info("api.orchestrate", task=request.task, chars=len(request.text))
    result = await orchestrator.run(
        task=request.task,
        input_text=request.text,
        target_language=request.target_language,
        budget_usdt=request.budget_usdt,
    )
    return OrchestrationResponse.model_validate(result.to_dict())
