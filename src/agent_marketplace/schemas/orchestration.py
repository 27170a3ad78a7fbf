"""Pydantic schemas for the marketplace HTTP API.

These schemas define the request/response shapes for the REST routes and
the local agent endpoints. They are separate from the domain dataclasses so
wire naming (camelCase) stays out of the service layer.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class OrchestrateRequest(BaseModel):
    """Request body for an orchestration run."""

    model_config = ConfigDict(populate_by_name=True)

    task: str = Field(
        ...,
        min_length=1,
        description="Task tag: 'summarize', 'translate', 'explain-code' or 'full-pipeline'",
        examples=["full-pipeline"],
    )
    text: str = Field(
        ...,
        max_length=100_000,
        description="Text or code handed to every hired agent",
    )
    target_language: str | None = Field(
        default=None,
        alias="targetLanguage",
        description="Target language for translation",
        examples=["French"],
    )
    budget_usdt: str | None = Field(
        default=None,
        alias="budgetUsdt",
        pattern=r"^\d+(\.\d+)?$",
        description="Optional per-agent price ceiling in USDT",
        examples=["0.10"],
    )


class LocalAgentRequest(BaseModel):
    """Legacy body accepted by the built-in local agents."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, max_length=100_000)
    target_language: str = Field(default="French", alias="targetLanguage")
    code: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """One paid hire."""

    agent: str
    txHash: str
    orderId: str
    amount: str
    currency: str = "USDT"
    chainId: int
    explorer: str


class OrchestrationResponse(BaseModel):
    """Result of an orchestration run."""

    task: str
    timestamp: str
    transactions: list[TransactionResponse]
    outputs: dict[str, str]
    demoMode: bool
    agentSource: str


class PaymentRequiredResponse(BaseModel):
    """Body of a 402 reply from a local agent."""

    error: str = "Payment required"
    amount: str
    currency: str = "USDT"
    address: str
    chainId: int
    network: str = "GOAT Testnet3"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    settlement_mode: str = "unknown"
    registry_configured: bool = False
