"""Domain enumerations for the Agent Marketplace.

These enums define the canonical states and tags used throughout the system.
They are framework-agnostic (no FastAPI, no web3 imports).
"""

import enum


class SettlementMode(enum.StrEnum):
    """How the settlement engine pays agents.

    LIVE performs the real x402 order flow on-chain. SIMULATED fabricates
    well-formed receipts without touching the network; it is selected when
    settlement credentials are absent from configuration.
    """

    LIVE = "LIVE"
    SIMULATED = "SIMULATED"


class OrderStatus(enum.StrEnum):
    """Lifecycle states of a payment order.

    Transitions are enforced by PaymentOrderStateMachine.
    PENDING, PAID and CONFIRMED mirror the x402 order API; TIMED_OUT and
    FAILED are local terminal states.
    """

    PENDING = "PENDING"
    PAID = "PAID"
    CONFIRMED = "CONFIRMED"
    TIMED_OUT = "TIMED_OUT"
    FAILED = "FAILED"


class TaskTag(enum.StrEnum):
    """Task tags accepted by the orchestrator."""

    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    EXPLAIN_CODE = "explain-code"
    FULL_PIPELINE = "full-pipeline"


class RegistrySource(enum.StrEnum):
    """Where an agent set came from, recorded for diagnostics."""

    REGISTRY = "registry"
    FALLBACK = "fallback"
