"""Registry Resolver: the agent universe for discovery and hiring.

Reads the ERC-8004 identity registry on GOAT Network and falls back to a
built-in agent list whenever the registry cannot supply any usable agents,
so the orchestrator never sees an empty universe.

Resolution order per agent:
    endpoint: metadata "endpoint" -> LEGACY_ENDPOINTS[name] -> None
    price:    metadata "priceUsdt" -> default price
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from web3.exceptions import Web3Exception

from agent_marketplace.domain.enums import RegistrySource
from agent_marketplace.domain.exceptions import (
    AgentMetadataMalformedError,
    AgentNotFoundError,
    RegistryUnavailableError,
)
from agent_marketplace.domain.models import AgentInfo, AgentSnapshot
from agent_marketplace.logging_config import get_logger
from agent_marketplace.services.agent_metadata import decode_token_uri

if TYPE_CHECKING:
    from collections.abc import Iterable

    from agent_marketplace.infrastructure.chain import ChainClient

logger = get_logger(__name__)

DEFAULT_PRICE_USDT = "0.10"

# Agents served by this process before the generic envelope existed
LEGACY_ENDPOINTS: dict[str, str] = {
    "Summarizer": "/api/agents/summarize",
    "Translator": "/api/agents/translate",
}


def build_agent(
    token_id: int,
    document: dict,
    default_price: str = DEFAULT_PRICE_USDT,
) -> AgentInfo:
    """Build an AgentInfo from a decoded metadata document."""
    name = document["name"]
    endpoint = document.get("endpoint") or LEGACY_ENDPOINTS.get(name)
    return AgentInfo(
        id=token_id,
        name=name,
        description=document.get("description", ""),
        endpoint=endpoint,
        merchant_id=document["merchantId"],
        price_usdt=document.get("priceUsdt") or default_price,
        x402_support=bool(document.get("x402Support", False)),
        active=bool(document.get("active", False)),
    )


FALLBACK_AGENTS: tuple[AgentInfo, ...] = tuple(
    build_agent(token_id, document)
    for token_id, document in enumerate([
        {
            "name": "Summarizer",
            "description": "Summarizes long text into key points",
            "merchantId": "summarizer_agent",
            "priceUsdt": "0.10",
            "x402Support": True,
            "active": True,
        },
        {
            "name": "Translator",
            "description": "Translates text to any language",
            "merchantId": "translator_agent",
            "priceUsdt": "0.10",
            "x402Support": True,
            "active": True,
        },
        {
            "name": "Code Explainer",
            "description": "Explains code in plain English",
            "merchantId": "code_explainer_agent",
            "priceUsdt": "0.10",
            "x402Support": True,
            "active": True,
        },
    ])
)


def filter_agents(
    agents: Iterable[AgentInfo],
    capability: str | None = None,
    x402_only: bool = False,
) -> list[AgentInfo]:
    """Filter by a case-insensitive keyword on name/description and payment support."""
    selected = list(agents)
    if capability:
        keyword = capability.lower()
        selected = [
            a for a in selected
            if keyword in a.name.lower() or keyword in a.description.lower()
        ]
    if x402_only:
        selected = [a for a in selected if a.x402_support]
    return selected


class RegistryResolver:
    """Resolves agent identities from the on-chain registry with a static fallback."""

    def __init__(
        self,
        chain: ChainClient | None,
        timeout_seconds: float = 10.0,
        default_price: str = DEFAULT_PRICE_USDT,
        fallback_agents: tuple[AgentInfo, ...] = FALLBACK_AGENTS,
    ) -> None:
        self._chain = chain
        self._timeout = timeout_seconds
        self._default_price = default_price
        self._fallback = fallback_agents

    async def list_agents(self) -> AgentSnapshot:
        """Return every hire-eligible agent and the source that supplied them."""
        try:
            agents = await self._read_registry()
        except RegistryUnavailableError as exc:
            logger.warning("registry.fallback", reason=exc.reason)
            return AgentSnapshot(agents=self._fallback, source=RegistrySource.FALLBACK)

        if not agents:
            logger.info("registry.fallback", reason="no usable agents in registry")
            return AgentSnapshot(agents=self._fallback, source=RegistrySource.FALLBACK)

        logger.info("registry.loaded", count=len(agents))
        return AgentSnapshot(agents=tuple(agents), source=RegistrySource.REGISTRY)

    async def lookup(self, agent_id: int) -> tuple[AgentInfo, RegistrySource]:
        """Find one agent by id in the current universe, then in the fallback set.

        Raises:
            AgentNotFoundError: If neither knows the id.
        """
        snapshot = await self.list_agents()
        for agent in snapshot.agents:
            if agent.id == agent_id:
                return agent, snapshot.source

        if snapshot.source is RegistrySource.REGISTRY:
            for agent in self._fallback:
                if agent.id == agent_id:
                    return agent, RegistrySource.FALLBACK

        raise AgentNotFoundError(agent_id)

    async def get_agent(self, agent_id: int) -> AgentInfo:
        agent, _ = await self.lookup(agent_id)
        return agent

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _read_registry(self) -> list[AgentInfo]:
        if self._chain is None or not self._chain.has_registry:
            raise RegistryUnavailableError("registry address not configured")

        try:
            async with asyncio.timeout(self._timeout):
                return await self._enumerate(self._chain)
        except TimeoutError as exc:
            raise RegistryUnavailableError(f"timed out after {self._timeout:g}s") from exc
        except Exception as exc:
            raise RegistryUnavailableError(str(exc)) from exc

    async def _enumerate(self, chain: ChainClient) -> list[AgentInfo]:
        total = await chain.total_agents()
        agents: list[AgentInfo] = []

        for index in range(total):
            token_id: int | None = None
            try:
                token_id = await chain.token_id_at(index)
                token_uri = await chain.token_uri(token_id)
                document = decode_token_uri(token_id, token_uri)
            except AgentMetadataMalformedError as exc:
                logger.warning("registry.metadata_malformed", token_id=token_id, error=exc.message)
                continue
            except Web3Exception as exc:
                # Reverts and undecodable return data skip this token only
                logger.warning(
                    "registry.token_unreadable", index=index, token_id=token_id, error=str(exc)
                )
                continue

            agent = build_agent(token_id, document, self._default_price)
            if not agent.is_hirable:
                logger.debug("registry.agent_skipped", token_id=token_id, active=agent.active)
                continue
            agents.append(agent)

        return agents
