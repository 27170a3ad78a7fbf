"""Domain exceptions for the Agent Marketplace.

These exceptions are framework-agnostic and represent business rule violations.
The orchestrator turns per-agent failures into error strings; the API layer's
middleware translates the rest into HTTP responses.
"""


class MarketplaceError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "MARKETPLACE_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Registry Errors ---


class RegistryUnavailableError(MarketplaceError):
    """Raised when the on-chain registry cannot be read (unreachable, timeout, unset)."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Agent registry unavailable: {reason}",
            code="REGISTRY_UNAVAILABLE",
        )
        self.reason = reason


class AgentMetadataMalformedError(MarketplaceError):
    """Raised when a single token's metadata document cannot be decoded."""

    def __init__(self, token_id: int, reason: str) -> None:
        super().__init__(
            message=f"Malformed metadata for agent #{token_id}: {reason}",
            code="AGENT_METADATA_MALFORMED",
        )
        self.token_id = token_id


class AgentNotFoundError(MarketplaceError):
    """Raised when an agent id is absent from both the registry and the fallback set."""

    def __init__(self, agent_id: int) -> None:
        super().__init__(
            message=f"Agent #{agent_id} not found",
            code="AGENT_NOT_FOUND",
        )
        self.agent_id = agent_id


# --- Hire Errors ---


class NoCallableEndpointError(MarketplaceError):
    """Raised when an agent is discoverable but exposes no endpoint to call."""

    def __init__(self, agent_name: str) -> None:
        super().__init__(
            message=(
                f"{agent_name} has no callable endpoint. "
                "It may be discoverable but not hirable."
            ),
            code="NO_CALLABLE_ENDPOINT",
        )
        self.agent_name = agent_name


class BudgetExceededError(MarketplaceError):
    """Raised when an agent's price is above the caller's budget ceiling."""

    def __init__(self, price: str, budget: str) -> None:
        super().__init__(
            message=f"Agent price ({price} USDT) exceeds budget ({budget} USDT)",
            code="BUDGET_EXCEEDED",
        )
        self.price = price
        self.budget = budget


# --- State Machine Errors ---


class InvalidStateTransitionError(MarketplaceError):
    """Raised when a payment order transition is not allowed.

    Example: PENDING -> CONFIRMED (the transfer must be submitted first).
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid order transition: {current_state} -> {attempted_event}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


# --- Settlement Errors ---


class SettlementError(MarketplaceError):
    """Base exception for settlement failures."""

    def __init__(
        self,
        message: str,
        code: str = "SETTLEMENT_ERROR",
        order_id: str | None = None,
    ) -> None:
        super().__init__(message=message, code=code)
        self.order_id = order_id


class SettlementFailedError(SettlementError):
    """Raised when order creation, the transfer, or a status poll call errors."""

    def __init__(self, message: str, order_id: str | None = None) -> None:
        super().__init__(message=message, code="SETTLEMENT_FAILED", order_id=order_id)


class SettlementTimeoutError(SettlementError):
    """Raised when an order is not confirmed before the polling deadline."""

    def __init__(self, order_id: str, timeout_seconds: float) -> None:
        super().__init__(
            message=f"x402 order {order_id} not confirmed within {timeout_seconds:g}s",
            code="SETTLEMENT_TIMEOUT",
            order_id=order_id,
        )
        self.timeout_seconds = timeout_seconds


# --- Invocation Errors ---


class InvocationError(MarketplaceError):
    """Base exception for agent endpoint call failures."""


class InvocationTimeoutError(InvocationError):
    """Raised when an agent does not answer before the call deadline."""

    def __init__(self, agent_name: str, timeout_seconds: float) -> None:
        super().__init__(
            message=f"{agent_name} timed out after {timeout_seconds:g}s",
            code="INVOCATION_TIMEOUT",
        )


class InvocationFailedError(InvocationError):
    """Raised when an agent call errors at the transport or decoding level."""

    def __init__(self, agent_name: str, reason: str) -> None:
        super().__init__(
            message=f"{agent_name} call failed: {reason}",
            code="INVOCATION_FAILED",
        )


# --- Auth Errors ---


class UnauthorizedError(MarketplaceError):
    """Raised when a caller presents a wrong shared-secret token."""

    def __init__(self) -> None:
        super().__init__(message="Unauthorized", code="UNAUTHORIZED")
