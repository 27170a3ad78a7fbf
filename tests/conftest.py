"""Shared test fixtures for the Agent Marketplace test suite.

Provides:
    - Settings for simulated and live settlement
    - A fake chain client standing in for the registry and USDT contracts
    - Agent and payment factories
    - MockTransport-backed agent endpoints and x402 order API
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from agent_marketplace.config import Settings
from agent_marketplace.domain.exceptions import SettlementFailedError
from agent_marketplace.domain.models import AgentInfo, PaymentResult
from agent_marketplace.infrastructure.chain import TransferEvent
from agent_marketplace.services.agent_metadata import encode_token_uri

TEST_PRIVATE_KEY = "0x" + "11" * 32
TEST_TX_HASH = "0x" + "ab" * 32
PAY_TO_ADDRESS = "0x1111111111111111111111111111111111111111"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeChain:
    """In-memory stand-in for ChainClient."""

    def __init__(
        self,
        token_uris: dict[int, str] | None = None,
        has_registry: bool = True,
        registry_error: Exception | None = None,
        registry_delay: float = 0.0,
        transfer_error: Exception | None = None,
        events: list[TransferEvent] | None = None,
    ) -> None:
        self.token_uris = token_uris or {}
        self.has_registry = has_registry
        self.registry_error = registry_error
        self.registry_delay = registry_delay
        self.transfer_error = transfer_error
        self.events = events
        self.transfers: list[tuple[str, str, int]] = []

    async def total_agents(self) -> int:
        if self.registry_delay:
            await asyncio.sleep(self.registry_delay)
        if self.registry_error is not None:
            raise self.registry_error
        return len(self.token_uris)

    async def token_id_at(self, index: int) -> int:
        return list(self.token_uris)[index]

    async def token_uri(self, token_id: int) -> str:
        return self.token_uris[token_id]

    @staticmethod
    def address_of(private_key: str) -> str:
        return "0xCaller"

    async def transfer_token(self, private_key: str, to_address: str, amount: int) -> str:
        self.transfers.append((private_key, to_address, amount))
        if self.transfer_error is not None:
            raise self.transfer_error
        return TEST_TX_HASH

    async def transfer_events(self, tx_hash: str) -> list[TransferEvent] | None:
        return self.events


class StubSettlement:
    """Settlement engine double that records hires and fails on demand."""

    def __init__(self, fail_for: tuple[str, ...] = (), demo_mode: bool = False) -> None:
        self.fail_for = fail_for
        self.demo_mode = demo_mode
        self.calls: list[str] = []

    async def pay_agent(self, merchant_id, amount_usdt, payer) -> PaymentResult:
        self.calls.append(merchant_id)
        if merchant_id in self.fail_for:
            raise SettlementFailedError(f"x402 createOrder failed for {merchant_id}")
        return PaymentResult(
            tx_hash=TEST_TX_HASH,
            order_id="o1",
            explorer_url=f"https://explorer.testnet3.goat.network/tx/{TEST_TX_HASH}",
        )


def agent_document(**overrides) -> dict:
    """Return a valid ERC-8004 metadata document."""
    document = {
        "type": "agent",
        "name": "Summarizer",
        "description": "Summarizes long text into key points",
        "x402Support": True,
        "active": True,
        "merchantId": "summarizer_agent",
        "endpoint": "https://agents.example/summarize",
        "priceUsdt": "0.10",
    }
    document.update(overrides)
    return document


def json_transport(results: dict[str, dict]) -> httpx.MockTransport:
    """MockTransport answering each URL path with a fixed JSON body."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=results.get(request.url.path, {}))

    return httpx.MockTransport(handler)


def order_api_client(
    statuses: list[str], seen: list[httpx.Request] | None = None
) -> httpx.AsyncClient:
    """x402 order API that creates order o1 and reports the given statuses in turn."""
    remaining = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.method == "POST" and request.url.path == "/orders":
            return httpx.Response(
                201,
                json={"order_id": "o1", "pay_to_address": PAY_TO_ADDRESS, "amount": "100000"},
            )
        if request.method == "GET" and request.url.path == "/orders/o1":
            status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            return httpx.Response(200, json={"order_id": "o1", "status": status})
        return httpx.Response(404, json={"error": "not found"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings without settlement credentials (simulated mode)."""
    return Settings(
        _env_file=None,
        goatx402_api_key="",
        agent_private_key="",
        agent_api_token="",
        erc8004_registry_address="",
        public_base_url="http://testserver",
    )


@pytest.fixture
def live_settings() -> Settings:
    """Settings with credentials and fast polling (live mode)."""
    return Settings(
        _env_file=None,
        goatx402_api_url="https://x402.test",
        goatx402_api_key="test-api-key",
        goatx402_merchant_api_keys={"translator_agent": "translator-key"},
        agent_private_key=TEST_PRIVATE_KEY,
        usdt_address="0x2222222222222222222222222222222222222222",
        settlement_poll_interval_seconds=0.01,
        settlement_poll_timeout_seconds=0.1,
    )


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def registry_chain() -> FakeChain:
    """Registry with two healthy agents."""
    return FakeChain(
        token_uris={
            7: encode_token_uri(agent_document()),
            9: encode_token_uri(
                agent_document(
                    name="Translator",
                    description="Translates text to any language",
                    merchantId="translator_agent",
                    endpoint=None,
                    priceUsdt=None,
                )
            ),
        }
    )


@pytest.fixture
def remote_agents() -> tuple[AgentInfo, ...]:
    """Three hirable agents with remote endpoints."""
    return (
        AgentInfo(
            id=0,
            name="Summarizer",
            description="Summarizes long text",
            endpoint="https://agents.example/summarize",
            merchant_id="summarizer_agent",
            price_usdt="0.10",
        ),
        AgentInfo(
            id=1,
            name="Translator",
            description="Translates text",
            endpoint="https://agents.example/translate",
            merchant_id="translator_agent",
            price_usdt="0.10",
        ),
        AgentInfo(
            id=2,
            name="Code Explainer",
            description="Explains code",
            endpoint="https://agents.example/explain",
            merchant_id="code_explainer_agent",
            price_usdt="0.10",
        ),
    )


@pytest.fixture
def payment() -> PaymentResult:
    return PaymentResult(
        tx_hash=TEST_TX_HASH,
        order_id="o1",
        explorer_url=f"https://explorer.testnet3.goat.network/tx/{TEST_TX_HASH}",
    )
