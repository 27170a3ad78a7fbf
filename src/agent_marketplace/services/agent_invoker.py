"""Agent Invoker: calls a hired agent's task endpoint with proof of payment.

The request body comes from the agent's route variant (RemoteRoute speaks
the generic task envelope, LocalRoute the legacy {text} shape). Every call
carries the settlement tx hash in the x-payment header and is cancelled when
the call deadline passes.

invoke() never raises: timeouts, transport errors and undecodable replies
come back as "Error: ..." strings so one slow agent cannot take down a run.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx

from agent_marketplace.domain.exceptions import (
    InvocationFailedError,
    InvocationTimeoutError,
    MarketplaceError,
    NoCallableEndpointError,
)
from agent_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from agent_marketplace.domain.models import AgentInfo, PaymentResult

logger = get_logger(__name__)

NO_OUTPUT = "No output"
PAYMENT_HEADER = "x-payment"


def normalize_response(data: object) -> str:
    """Pick the agent's result, else its error, else the no-output sentinel."""
    if isinstance(data, dict):
        for key in ("result", "error"):
            value = data.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    return NO_OUTPUT


class AgentInvoker:
    """Posts tasks to agent endpoints under a bounded timeout."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._http_client = http_client

    async def invoke(
        self,
        agent: AgentInfo,
        task: str,
        input_text: str,
        target_language: str | None,
        payment: PaymentResult,
    ) -> str:
        """Run the agent's task and return its output or an error string."""
        try:
            return await self._call(agent, task, input_text, target_language, payment)
        except MarketplaceError as exc:
            logger.warning("invoker.failed", agent=agent.name, code=exc.code, error=exc.message)
            return f"Error: {exc.message}"

    async def _call(
        self,
        agent: AgentInfo,
        task: str,
        input_text: str,
        target_language: str | None,
        payment: PaymentResult,
    ) -> str:
        if agent.route is None:
            raise NoCallableEndpointError(agent.name)

        url, body = agent.route.build_request(
            task, input_text, target_language, payment, self._base_url
        )
        headers = {"Content-Type": "application/json", PAYMENT_HEADER: payment.tx_hash}

        logger.info("invoker.calling", agent=agent.name, url=url)
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._post(url, body, headers)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise InvocationTimeoutError(agent.name, self._timeout) from exc
        except httpx.HTTPError as exc:
            raise InvocationFailedError(agent.name, str(exc) or type(exc).__name__) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise InvocationFailedError(
                agent.name, f"non-JSON response (HTTP {response.status_code})"
            ) from exc

        return normalize_response(data)

    async def _post(self, url: str, body: dict, headers: dict[str, str]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(url, json=body, headers=headers)
