"""Tests for the MCP tools, with the orchestrator patched in."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
from conftest import StubSettlement, json_transport

from agent_marketplace.mcp_server import tools
from agent_marketplace.services.agent_invoker import AgentInvoker
from agent_marketplace.services.orchestrator import Orchestrator
from agent_marketplace.services.registry_service import RegistryResolver


@pytest.fixture
def settlement() -> StubSettlement:
    return StubSettlement()


@pytest.fixture
def orchestrator(settlement: StubSettlement) -> Orchestrator:
    return Orchestrator(
        registry=RegistryResolver(None),
        settlement=settlement,
        invoker=AgentInvoker(
            base_url="http://testserver",
            http_client=httpx.AsyncClient(
                transport=json_transport({"/api/agents/translate": {"result": "Hola"}})
            ),
        ),
        chain_id=48816,
    )


@pytest.fixture
def patched(orchestrator: Orchestrator):
    with patch(
        "agent_marketplace.mcp_server.tools._get_orchestrator", return_value=orchestrator
    ):
        yield


@pytest.mark.usefixtures("patched")
class TestDiscoverAgents:
    @pytest.mark.asyncio
    async def test_lists_fallback_agents(self) -> None:
        data = await tools.discover_agents()
        assert data["source"] == "fallback"
        assert data["count"] == 3
        assert data["agents"][0]["price"] == "0.10 USDT"

    @pytest.mark.asyncio
    async def test_capability_filter(self) -> None:
        data = await tools.discover_agents(capability="code")
        assert [a["name"] for a in data["agents"]] == ["Code Explainer"]


@pytest.mark.usefixtures("patched")
class TestGetAgent:
    @pytest.mark.asyncio
    async def test_found(self) -> None:
        data = await tools.get_agent(1)
        assert data["name"] == "Translator"
        assert data["endpoint"] == "/api/agents/translate"

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        assert await tools.get_agent(99) == {
            "error": "Agent #99 not found",
            "code": "AGENT_NOT_FOUND",
        }


@pytest.mark.usefixtures("patched")
class TestHireAgent:
    @pytest.mark.asyncio
    async def test_hire(self, settlement: StubSettlement) -> None:
        data = await tools.hire_agent(
            agent_id=1, task="translate", input="Hello", target_language="Spanish"
        )

        assert data["agent"] == "Translator"
        assert data["result"] == "Hola"
        assert data["order_id"] == "o1"
        assert data["self_funded"] is False
        assert data["demo_mode"] is False
        assert settlement.calls == ["translator_agent"]

    @pytest.mark.asyncio
    async def test_self_funded(self) -> None:
        data = await tools.hire_agent(
            agent_id=1,
            task="translate",
            input="Hello",
            caller_private_key="0x" + "44" * 32,
            caller_address="0xCaller",
        )
        assert data["self_funded"] is True
        assert data["paid_by"] == "0xCaller"

    @pytest.mark.asyncio
    async def test_over_budget(self, settlement: StubSettlement) -> None:
        data = await tools.hire_agent(agent_id=0, task="summarize", input="x", budget_usdt="0.01")
        assert data == {
            "error": "Agent price (0.10 USDT) exceeds budget (0.01 USDT)",
            "code": "BUDGET_EXCEEDED",
        }
        assert settlement.calls == []

    @pytest.mark.asyncio
    async def test_unhirable(self) -> None:
        data = await tools.hire_agent(agent_id=2, task="explain-code", input="print(1)")
        assert data["code"] == "NO_CALLABLE_ENDPOINT"

    @pytest.mark.asyncio
    async def test_unknown_agent(self) -> None:
        data = await tools.hire_agent(agent_id=77, task="summarize", input="x")
        assert data["error"] == "Agent #77 not found"
