"""Pydantic API schemas."""

from agent_marketplace.schemas.orchestration import (
    HealthResponse,
    LocalAgentRequest,
    OrchestrateRequest,
    OrchestrationResponse,
    PaymentRequiredResponse,
    TransactionResponse,
)

__all__ = [
    "HealthResponse",
    "LocalAgentRequest",
    "OrchestrateRequest",
    "OrchestrationResponse",
    "PaymentRequiredResponse",
    "TransactionResponse",
]
