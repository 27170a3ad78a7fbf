"""Domain value objects for agents, payments and orchestration results.

Plain dataclasses with no I/O. AgentInfo, PaymentResult and TransactionReceipt
are frozen; PaymentOrder is the one mutable object and only changes status
through PaymentOrderStateMachine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

from pydantic import SecretStr
from agent_marketplace.domain.enums import OrderStatus, RegistrySource, TaskTag
from agent_marketplace.domain.state_machine import fire_event

# ---------------------------------------------------------------------------
# Agent routes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RemoteRoute:
    """An absolute http(s) endpoint that speaks the generic task envelope."""

    url: str

    def build_request(
        self,
        task: str,
        input_text: str,
        target_language: str | None,
        payment: PaymentResult,
        base_url: str,
    ) -> tuple[str, dict]:
        body: dict = {"task": task, "input": input_text}
        if target_language:
            body["targetLanguage"] = target_language
        body["payment"] = {
            "txHash": payment.tx_hash,
            "orderId": payment.order_id,
            "explorerUrl": payment.explorer_url,
        }
        return self.url, body


@dataclass(frozen=True)
class LocalRoute:
    """A path on this service, served by a legacy agent that expects {text}."""

    path: str

    def build_request(
        self,
        task: str,
        input_text: str,
        target_language: str | None,
        payment: PaymentResult,
        base_url: str,
    ) -> tuple[str, dict]:
        body: dict = {"text": input_text}
        if task == TaskTag.TRANSLATE and target_language:
            body["targetLanguage"] = target_language
        if task == TaskTag.EXPLAIN_CODE:
            body["code"] = input_text
        return f"{base_url.rstrip('/')}{self.path}", body


AgentRoute = LocalRoute | RemoteRoute


def route_for(endpoint: str | None) -> AgentRoute | None:
    """Resolve an endpoint string into its request variant."""
    if not endpoint:
        return None
    if endpoint.startswith(("http://", "https://")):
        return RemoteRoute(url=endpoint)
    return LocalRoute(path=endpoint if endpoint.startswith("/") else f"/{endpoint}")


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AgentInfo:
    """A hireable agent as described by the registry or the fallback list.

    Attributes:
        id: ERC-8004 token id.
        name: Display name, also the key into the legacy endpoint table.
        description: Free text used for capability keyword filtering.
        endpoint: Resolved endpoint, or None when the agent cannot be called.
        merchant_id: x402 routing key for the agent's payee account.
        price_usdt: Fee per invocation as a decimal string.
        x402_support: Whether the agent accepts x402 payments.
        active: Whether the agent is currently accepting work.
        route: Request variant derived from endpoint at construction time.
    """

    id: int
    name: str
    description: str
    endpoint: str | None
    merchant_id: str
    price_usdt: str
    x402_support: bool = True
    active: bool = True
    route: AgentRoute | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"Agent id must be non-negative, got {self.id}")
        if self.route is None and self.endpoint:
            object.__setattr__(self, "route", route_for(self.endpoint))

    @property
    def is_hirable(self) -> bool:
        return self.active and self.x402_support

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "endpoint": self.endpoint,
            "merchantId": self.merchant_id,
            "price": f"{self.price_usdt} USDT",
            "x402Support": self.x402_support,
            "active": self.active,
        }


@dataclass(frozen=True)
class AgentSnapshot:
    """The agent universe for one run and where it came from."""

    agents: tuple[AgentInfo, ...]
    source: RegistrySource


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Payer:
    """Who funds a hire.

    The orchestrator's own configured key pays unless the caller hands in
    its own private key. A self-funding key lives only as long as the call.
    """

    private_key: SecretStr | None = None
    caller_address: str | None = None

    @classmethod
    def orchestrator(cls) -> Payer:
        return cls()

    @classmethod
    def self_funded(cls, private_key: str, caller_address: str | None = None) -> Payer:
        return cls(private_key=SecretStr(private_key), caller_address=caller_address)

    @property
    def is_self_funded(self) -> bool:
        return self.private_key is not None and bool(self.private_key.get_secret_value())


@dataclass
class PaymentOrder:
    """An x402 order created for a single hire attempt."""

    order_id: str
    pay_to_address: str
    amount: int
    status: OrderStatus = OrderStatus.PENDING

    def advance(self, event_name: str) -> OrderStatus:
        """Fire a state machine event and store the resulting status."""
        self.status = OrderStatus(fire_event(self.status.value, event_name))
        return self.status


@dataclass(frozen=True)
class PaymentResult:
    """A settled (or simulated) payment."""

    tx_hash: str
    order_id: str
    explorer_url: str
    caller_address: str | None = None


@dataclass(frozen=True)
class TransactionReceipt:
    """One paid hire, as reported back to the caller."""

    agent: str
    tx_hash: str
    order_id: str
    amount: str
    chain_id: int
    explorer: str
    currency: str = "USDT"

    def to_dict(self) -> dict:
        return {
            "agent": self.agent,
            "txHash": self.tx_hash,
            "orderId": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "chainId": self.chain_id,
            "explorer": self.explorer,
        }


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


@dataclass
class OrchestrationResult:
    """Final artifact of an orchestration run."""

    task: str
    demo_mode: bool
    agent_source: RegistrySource
    transactions: list[TransactionReceipt] = field(default_factory=list)
    outputs: dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict:
        return {
            "task": self.task,
            "timestamp": self.timestamp,
            "transactions": [tx.to_dict() for tx in self.transactions],
            "outputs": dict(self.outputs),
            "demoMode": self.demo_mode,
            "agentSource": self.agent_source.value,
        }


@dataclass
class HireResult:
    """Outcome of hiring one agent by id through the tool surface."""

    job_id: str
    agent: AgentInfo
    result: OrchestrationResult
    payment: PaymentResult | None = None
    error: str | None = None
    error_code: str | None = None
    paid_by: str | None = None
    self_funded: bool = False

    def to_dict(self) -> dict:
        payload = self.result.to_dict()
        payload.update({
            "job_id": self.job_id,
            "agent": self.agent.name,
            "result": self.result.outputs.get(self.agent.name),
            "tx_hash": self.payment.tx_hash if self.payment else None,
            "order_id": self.payment.order_id if self.payment else None,
            "explorer_url": self.payment.explorer_url if self.payment else None,
            "paid_by": self.paid_by,
            "self_funded": self.self_funded,
            "demo_mode": self.result.demo_mode,
        })
        if self.error:
            payload["error"] = self.error
            payload["code"] = self.error_code
        return payload


def usdt_to_base_units(amount_usdt: str | Decimal, decimals: int = 6) -> int:
    """Convert a decimal USDT amount into integer token units.

    Raises:
        ValueError: If the amount is not a finite, non-negative decimal or has
            more precision than the token supports.
    """
    try:
        value = Decimal(str(amount_usdt).strip())
    except InvalidOperation as err:
        raise ValueError(f"Invalid USDT amount: {amount_usdt!r}") from err
    if not value.is_finite() or value < 0:
        raise ValueError(f"Invalid USDT amount: {amount_usdt!r}")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"USDT amount {amount_usdt!r} exceeds {decimals} decimals")
    return int(scaled)
