"""Orchestrator: hires agents for a task and assembles their results.

Pipeline for one run:

    resolve agents -> select hire set -> [per agent, concurrently]
        endpoint check -> budget check -> pay -> invoke
    -> aggregate in hire order

Per-agent pipelines run concurrently behind a semaphore sized to the hire
set. Inside a pipeline the steps are sequential because the invocation
carries the settlement tx hash as proof of payment. Every failure is caught
per agent and becomes that agent's output string; nothing aborts the run.

Usage:
    orchestrator = build_orchestrator(get_settings())
    result = await orchestrator.run("full-pipeline", "Some long text...")
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from agent_marketplace.domain.enums import TaskTag
from agent_marketplace.domain.exceptions import (
    BudgetExceededError,
    MarketplaceError,
    NoCallableEndpointError,
)
from agent_marketplace.domain.models import (
    HireResult,
    OrchestrationResult,
    Payer,
    TransactionReceipt,
)
from agent_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_marketplace.config import Settings
    from agent_marketplace.domain.models import AgentInfo, PaymentResult
    from agent_marketplace.services.agent_invoker import AgentInvoker
    from agent_marketplace.services.registry_service import RegistryResolver
    from agent_marketplace.services.settlement_service import SettlementEngine

logger = get_logger(__name__)

# Declared capability of each single-agent task tag
TASK_CAPABILITIES: dict[str, str] = {
    TaskTag.SUMMARIZE: "Summarizer",
    TaskTag.TRANSLATE: "Translator",
    TaskTag.EXPLAIN_CODE: "Code Explainer",
}


@dataclass
class HireOutcome:
    """Buffered result of one agent's pipeline."""

    agent: AgentInfo
    output: str
    payment: PaymentResult | None = None
    receipt: TransactionReceipt | None = None
    error: MarketplaceError | None = None


def select_agents(task: str, agents: Sequence[AgentInfo]) -> list[AgentInfo]:
    """Pick the hire set for a task tag, preserving registry order."""
    if task == TaskTag.FULL_PIPELINE:
        return list(agents)

    capability = TASK_CAPABILITIES.get(task)
    if capability is None:
        return []

    for agent in agents:
        if agent.name.lower() == capability.lower():
            return [agent]
    return []


def check_budget(price_usdt: str, budget_usdt: str | None) -> None:
    """Raise BudgetExceededError when the price is above the ceiling."""
    if budget_usdt is None:
        return
    try:
        over_budget = Decimal(price_usdt) > Decimal(budget_usdt)
    except InvalidOperation as exc:
        raise MarketplaceError(
            f"Cannot compare price {price_usdt!r} with budget {budget_usdt!r}",
            code="INVALID_BUDGET",
        ) from exc
    if over_budget:
        raise BudgetExceededError(price_usdt, budget_usdt)


class Orchestrator:
    """Runs pay-then-invoke pipelines across a set of agents."""

    def __init__(
        self,
        registry: RegistryResolver,
        settlement: SettlementEngine,
        invoker: AgentInvoker,
        chain_id: int,
        default_budget_usdt: str = "0.10",
        max_concurrency: int | None = None,
    ) -> None:
        self._registry = registry
        self._settlement = settlement
        self._invoker = invoker
        self._chain_id = chain_id
        self._default_budget = default_budget_usdt
        self._max_concurrency = max_concurrency

    @property
    def registry(self) -> RegistryResolver:
        return self._registry

    @property
    def demo_mode(self) -> bool:
        return self._settlement.demo_mode

    # ------------------------------------------------------------------
    # Multi-agent run
    # ------------------------------------------------------------------

    async def run(
        self,
        task: str,
        input_text: str,
        target_language: str | None = None,
        budget_usdt: str | None = None,
        payer: Payer | None = None,
    ) -> OrchestrationResult:
        """Hire every agent the task selects and collect their outputs.

        Args:
            task: Task tag ("summarize", "translate", "explain-code",
                "full-pipeline"). Unknown tags hire nobody.
            input_text: Text or code handed to each agent.
            target_language: Language for translation tasks.
            budget_usdt: Optional per-agent price ceiling.
            payer: Who funds the hires. Defaults to the orchestrator.

        Returns:
            OrchestrationResult with one output per attempted agent and one
            transaction per successful payment, both in hire order.
        """
        payer = payer or Payer.orchestrator()
        snapshot = await self._registry.list_agents()
        selected = select_agents(task, snapshot.agents)

        logger.info(
            "orchestrator.run_started",
            task=task,
            agent_source=snapshot.source.value,
            selected=[a.name for a in selected],
            demo_mode=self.demo_mode,
        )

        result = OrchestrationResult(
            task=task,
            demo_mode=self.demo_mode,
            agent_source=snapshot.source,
        )
        if not selected:
            return result

        limit = len(selected)
        if self._max_concurrency:
            limit = min(limit, self._max_concurrency)
        semaphore = asyncio.Semaphore(limit)

        async def bounded(agent: AgentInfo) -> HireOutcome:
            async with semaphore:
                return await self._hire_one(
                    agent, task, input_text, target_language, budget_usdt, payer
                )

        outcomes = await asyncio.gather(*(bounded(agent) for agent in selected))
        self._collect(result, outcomes)

        logger.info(
            "orchestrator.run_finished",
            task=task,
            attempted=len(result.outputs),
            paid=len(result.transactions),
        )
        return result

    # ------------------------------------------------------------------
    # Single-agent hire (tool surface)
    # ------------------------------------------------------------------

    async def hire(
        self,
        agent_id: int,
        task: str,
        input_text: str,
        budget_usdt: str | None = None,
        target_language: str | None = None,
        payer: Payer | None = None,
    ) -> HireResult:
        """Hire one agent by registry id.

        Raises:
            AgentNotFoundError: If the id is unknown to registry and fallback.
        """
        payer = payer or Payer.orchestrator()
        agent, source = await self._registry.lookup(agent_id)
        budget = budget_usdt or self._default_budget

        outcome = await self._hire_one(agent, task, input_text, target_language, budget, payer)

        result = OrchestrationResult(task=task, demo_mode=self.demo_mode, agent_source=source)
        self._collect(result, [outcome])

        paid_by = payer.caller_address
        if paid_by is None and outcome.payment is not None:
            paid_by = outcome.payment.caller_address

        return HireResult(
            job_id=f"job_{uuid.uuid4().hex[:12]}",
            agent=agent,
            result=result,
            payment=outcome.payment,
            error=outcome.error.message if outcome.error else None,
            error_code=outcome.error.code if outcome.error else None,
            paid_by=paid_by,
            self_funded=payer.is_self_funded,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _hire_one(
        self,
        agent: AgentInfo,
        task: str,
        input_text: str,
        target_language: str | None,
        budget_usdt: str | None,
        payer: Payer,
    ) -> HireOutcome:
        """Endpoint check -> budget check -> pay -> invoke. Never raises."""
        payment: PaymentResult | None = None
        receipt: TransactionReceipt | None = None
        try:
            if agent.route is None:
                raise NoCallableEndpointError(agent.name)
            check_budget(agent.price_usdt, budget_usdt)

            logger.info("orchestrator.hiring", agent=agent.name, price=agent.price_usdt)
            payment = await self._settlement.pay_agent(agent.merchant_id, agent.price_usdt, payer)
            receipt = TransactionReceipt(
                agent=agent.name,
                tx_hash=payment.tx_hash,
                order_id=payment.order_id,
                amount=agent.price_usdt,
                chain_id=self._chain_id,
                explorer=payment.explorer_url,
            )
            logger.info("orchestrator.paid", agent=agent.name, tx_hash=payment.tx_hash)

            output = await self._invoker.invoke(
                agent, task, input_text, target_language, payment
            )
            return HireOutcome(agent=agent, output=output, payment=payment, receipt=receipt)

        except MarketplaceError as exc:
            logger.warning(
                "orchestrator.agent_failed", agent=agent.name, code=exc.code, error=exc.message
            )
            return HireOutcome(
                agent=agent,
                output=f"Error: {exc.message}",
                payment=payment,
                receipt=receipt,
                error=exc,
            )
        except Exception as exc:
            logger.exception("orchestrator.agent_crashed", agent=agent.name)
            return HireOutcome(
                agent=agent,
                output=f"Error: {exc}",
                payment=payment,
                receipt=receipt,
                error=MarketplaceError(str(exc), code="AGENT_PIPELINE_ERROR"),
            )

    @staticmethod
    def _collect(result: OrchestrationResult, outcomes: Sequence[HireOutcome]) -> None:
        """Append outcomes to the result in hire order, keeping output keys unique."""
        for outcome in outcomes:
            key = outcome.agent.name
            if key in result.outputs:
                key = f"{outcome.agent.name} #{outcome.agent.id}"
            result.outputs[key] = outcome.output
            if outcome.receipt is not None:
                result.transactions.append(outcome.receipt)


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Wire registry, settlement and invoker from configuration."""
    from agent_marketplace.infrastructure.chain import ChainClient
    from agent_marketplace.services.agent_invoker import AgentInvoker
    from agent_marketplace.services.registry_service import RegistryResolver
    from agent_marketplace.services.settlement_service import SettlementEngine

    chain = ChainClient(
        rpc_url=settings.goat_rpc_url,
        chain_id=settings.chain_id,
        token_address=settings.usdt_address,
        registry_address=settings.erc8004_registry_address,
    )
    return Orchestrator(
        registry=RegistryResolver(
            chain,
            timeout_seconds=settings.registry_timeout_seconds,
            default_price=settings.default_price_usdt,
        ),
        settlement=SettlementEngine(settings, chain=chain),
        invoker=AgentInvoker(
            base_url=settings.public_base_url,
            timeout_seconds=settings.agent_call_timeout_seconds,
        ),
        chain_id=settings.chain_id,
        default_budget_usdt=settings.default_price_usdt,
    )
