"""Domain layer: agents, payment orders and results, free of I/O."""

from agent_marketplace.domain.enums import (
    OrderStatus,
    RegistrySource,
    SettlementMode,
    TaskTag,
)
from agent_marketplace.domain.exceptions import (
    AgentNotFoundError,
    BudgetExceededError,
    MarketplaceError,
    NoCallableEndpointError,
    SettlementError,
)
from agent_marketplace.domain.models import (
    AgentInfo,
    OrchestrationResult,
    Payer,
    PaymentOrder,
    PaymentResult,
)
from agent_marketplace.domain.state_machine import (
    PaymentOrderStateMachine,
    validate_transition,
)

__all__ = [
    "OrderStatus",
    "RegistrySource",
    "SettlementMode",
    "TaskTag",
    "AgentNotFoundError",
    "BudgetExceededError",
    "MarketplaceError",
    "NoCallableEndpointError",
    "SettlementError",
    "AgentInfo",
    "OrchestrationResult",
    "Payer",
    "PaymentOrder",
    "PaymentResult",
    "PaymentOrderStateMachine",
    "validate_transition",
]
