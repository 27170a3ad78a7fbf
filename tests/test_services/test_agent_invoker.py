"""Unit tests for the AgentInvoker (request shaping, timeouts, normalization)."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from agent_marketplace.domain.models import AgentInfo, PaymentResult
from agent_marketplace.services.agent_invoker import NO_OUTPUT, AgentInvoker, normalize_response


def _agent(endpoint: str | None, name: str = "Translator") -> AgentInfo:
    return AgentInfo(
        id=1,
        name=name,
        description="Translates text",
        endpoint=endpoint,
        merchant_id="translator_agent",
        price_usdt="0.10",
    )


def _recording_client(seen: list[httpx.Request], body: dict | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=body if body is not None else {"result": "Bonjour"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestNormalizeResponse:
    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            ({"result": "ok", "error": "ignored"}, "ok"),
            ({"error": "Invalid payment"}, "Invalid payment"),
            ({"result": ""}, NO_OUTPUT),
            ({}, NO_OUTPUT),
            (["not", "an", "object"], NO_OUTPUT),
        ],
    )
    def test_precedence(self, data, expected: str) -> None:
        assert normalize_response(data) == expected


class TestInvoke:
    @pytest.mark.asyncio
    async def test_remote_agent_gets_envelope(self, payment: PaymentResult) -> None:
        seen: list[httpx.Request] = []
        invoker = AgentInvoker(http_client=_recording_client(seen))

        output = await invoker.invoke(
            _agent("https://agents.example/translate"), "translate", "Hello", "French", payment
        )

        assert output == "Bonjour"
        request = seen[0]
        assert str(request.url) == "https://agents.example/translate"
        assert request.headers["x-payment"] == payment.tx_hash
        assert json.loads(request.content) == {
            "task": "translate",
            "input": "Hello",
            "targetLanguage": "French",
            "payment": {
                "txHash": payment.tx_hash,
                "orderId": "o1",
                "explorerUrl": payment.explorer_url,
            },
        }

    @pytest.mark.asyncio
    async def test_local_agent_gets_legacy_body(self, payment: PaymentResult) -> None:
        seen: list[httpx.Request] = []
        invoker = AgentInvoker(base_url="http://testserver", http_client=_recording_client(seen))

        await invoker.invoke(
            _agent("/api/agents/translate"), "translate", "Hello", "German", payment
        )

        assert str(seen[0].url) == "http://testserver/api/agents/translate"
        assert json.loads(seen[0].content) == {"text": "Hello", "targetLanguage": "German"}

    @pytest.mark.asyncio
    async def test_agent_error_is_returned(self, payment: PaymentResult) -> None:
        seen: list[httpx.Request] = []
        invoker = AgentInvoker(http_client=_recording_client(seen, {"error": "Invalid payment"}))
        output = await invoker.invoke(_agent("https://a.example"), "translate", "x", None, payment)
        assert output == "Invalid payment"

    @pytest.mark.asyncio
    async def test_no_endpoint(self, payment: PaymentResult) -> None:
        output = await AgentInvoker().invoke(
            _agent(None, name="Code Explainer"), "explain-code", "x", None, payment
        )
        assert output == (
            "Error: Code Explainer has no callable endpoint. "
            "It may be discoverable but not hirable."
        )

    @pytest.mark.asyncio
    async def test_timeout(self, payment: PaymentResult) -> None:
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1.0)
            return httpx.Response(200, json={"result": "too late"})

        invoker = AgentInvoker(
            timeout_seconds=0.05,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(slow)),
        )
        output = await invoker.invoke(_agent("https://a.example"), "translate", "x", None, payment)
        assert output == "Error: Translator timed out after 0.05s"

    @pytest.mark.asyncio
    async def test_transport_error(self, payment: PaymentResult) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        invoker = AgentInvoker(http_client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)))
        output = await invoker.invoke(_agent("https://a.example"), "translate", "x", None, payment)
        assert output == "Error: Translator call failed: connection refused"

    @pytest.mark.asyncio
    async def test_non_json_reply(self, payment: PaymentResult) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(502, text="<html>bad gateway"))
        )
        output = await AgentInvoker(http_client=client).invoke(
            _agent("https://a.example"), "translate", "x", None, payment
        )
        assert output == "Error: Translator call failed: non-JSON response (HTTP 502)"
