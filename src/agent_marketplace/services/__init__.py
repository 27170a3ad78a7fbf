"""Application services: registry, settlement, invocation and orchestration."""

from agent_marketplace.services.agent_invoker import AgentInvoker
from agent_marketplace.services.orchestrator import Orchestrator, build_orchestrator
from agent_marketplace.services.registry_service import RegistryResolver
from agent_marketplace.services.settlement_service import SettlementEngine

__all__ = [
    "AgentInvoker",
    "Orchestrator",
    "RegistryResolver",
    "SettlementEngine",
    "build_orchestrator",
]
