"""Settlement Engine: pays agents through the x402 order flow on GOAT Network.

Live flow, one PaymentOrder per hire:
    1. POST /orders            -> order_id + pay_to_address   (PENDING)
    2. USDT transfer on-chain  -> tx_hash                     (PAID)
    3. GET /orders/{order_id}  -> poll until CONFIRMED        (CONFIRMED)

Each step is attempted once. A failing call moves the order to FAILED and
raises SettlementFailedError; a confirmation that never arrives moves it to
TIMED_OUT and raises SettlementTimeoutError.

In simulated mode no network is touched: the engine returns a receipt with a
random 32-byte hash and a demo order id, in the same shape as a live one.
"""

from __future__ import annotations

import secrets
import uuid
from typing import TYPE_CHECKING

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from agent_marketplace.domain.enums import OrderStatus, SettlementMode
from agent_marketplace.domain.exceptions import (
    SettlementFailedError,
    SettlementTimeoutError,
)
from agent_marketplace.domain.models import (
    Payer,
    PaymentOrder,
    PaymentResult,
    usdt_to_base_units,
)
from agent_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from agent_marketplace.config import Settings
    from agent_marketplace.infrastructure.chain import ChainClient

logger = get_logger(__name__)


class SettlementEngine:
    """Creates, funds and confirms x402 payment orders."""

    def __init__(
        self,
        settings: Settings,
        chain: ChainClient | None = None,
        mode: SettlementMode | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Chain, token and x402 configuration.
            chain: Chain client used for transfers and receipt lookups.
                Required in LIVE mode.
            mode: Overrides settings.settlement_mode when given.
            http_client: Client for the x402 order API. A client is created
                per call when omitted.
        """
        self._settings = settings
        self._chain = chain
        self._mode = mode if mode is not None else settings.settlement_mode
        self._http_client = http_client
        self._poll_interval = settings.settlement_poll_interval_seconds
        self._poll_timeout = settings.settlement_poll_timeout_seconds

    @property
    def mode(self) -> SettlementMode:
        return self._mode

    @property
    def demo_mode(self) -> bool:
        return self._mode is SettlementMode.SIMULATED

    def explorer_link(self, tx_hash: str) -> str:
        return f"{self._settings.explorer_url.rstrip('/')}/tx/{tx_hash}"

    # ------------------------------------------------------------------
    # Pay
    # ------------------------------------------------------------------

    async def pay_agent(
        self,
        merchant_id: str,
        amount_usdt: str,
        payer: Payer,
    ) -> PaymentResult:
        """Pay an agent's merchant account and wait for settlement.

        Args:
            merchant_id: x402 merchant id of the agent being hired.
            amount_usdt: Price as a decimal string, e.g. "0.10".
            payer: Who funds the transfer. Payer.orchestrator() uses the
                configured key; Payer.self_funded(key) uses the caller's.

        Returns:
            PaymentResult with tx hash, order id and explorer link.

        Raises:
            SettlementFailedError: Order creation, transfer or polling failed.
            SettlementTimeoutError: The order was not confirmed in time.
        """
        if self.demo_mode:
            return self._simulate(merchant_id, amount_usdt, payer)

        try:
            amount = usdt_to_base_units(amount_usdt, self._settings.usdt_decimals)
        except ValueError as exc:
            raise SettlementFailedError(str(exc)) from exc

        private_key = self._signing_key(payer)
        api_key = self._settings.merchant_api_key(merchant_id)

        order = await self._create_order(merchant_id, amount, api_key)
        logger.info(
            "settlement.order_created",
            order_id=order.order_id,
            merchant_id=merchant_id,
            amount=order.amount,
        )

        tx_hash = await self._transfer(order, private_key)
        logger.info("settlement.transfer_submitted", order_id=order.order_id, tx_hash=tx_hash)

        await self._wait_for_confirmation(order, api_key)
        logger.info("settlement.confirmed", order_id=order.order_id, tx_hash=tx_hash)

        return PaymentResult(
            tx_hash=tx_hash,
            order_id=order.order_id,
            explorer_url=self.explorer_link(tx_hash),
            caller_address=self._caller_address(payer),
        )

    def _simulate(self, merchant_id: str, amount_usdt: str, payer: Payer) -> PaymentResult:
        tx_hash = "0x" + secrets.token_hex(32)
        order_id = f"demo_order_{uuid.uuid4().hex[:12]}"
        logger.info(
            "settlement.simulated",
            merchant_id=merchant_id,
            amount=amount_usdt,
            tx_hash=tx_hash,
            order_id=order_id,
        )
        return PaymentResult(
            tx_hash=tx_hash,
            order_id=order_id,
            explorer_url=self.explorer_link(tx_hash),
            caller_address=payer.caller_address if payer.is_self_funded else None,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    async def verify_payment(
        self,
        tx_hash: str,
        expected_payee: str,
        expected_amount_usdt: str,
    ) -> bool:
        """Check that a transaction moved at least the expected USDT to the payee.

        A missing receipt or no matching Transfer event means "not verified".
        """
        if self.demo_mode:
            return True

        chain = self._require_chain()
        expected = usdt_to_base_units(expected_amount_usdt, self._settings.usdt_decimals)
        events = await chain.transfer_events(tx_hash)
        if events is None:
            logger.info("settlement.verify_no_receipt", tx_hash=tx_hash)
            return False

        payee = expected_payee.lower()
        for event in events:
            if event.to.lower() == payee and event.value >= expected:
                return True

        logger.info("settlement.verify_no_match", tx_hash=tx_hash, events=len(events))
        return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_chain(self) -> ChainClient:
        if self._chain is None:
            raise SettlementFailedError("No chain client configured for live settlement")
        return self._chain

    def _signing_key(self, payer: Payer) -> str:
        if payer.is_self_funded and payer.private_key is not None:
            return payer.private_key.get_secret_value()
        key = self._settings.agent_private_key.get_secret_value()
        if not key:
            raise SettlementFailedError("Orchestrator private key is not configured")
        return key

    def _caller_address(self, payer: Payer) -> str | None:
        if not payer.is_self_funded:
            return None
        if payer.caller_address:
            return payer.caller_address
        return self._require_chain().address_of(self._signing_key(payer))

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    async def _request(self, method: str, path: str, api_key: str, **kwargs) -> httpx.Response:
        url = f"{self._settings.goatx402_api_url.rstrip('/')}{path}"
        if self._http_client is not None:
            return await self._http_client.request(
                method, url, headers=self._headers(api_key), **kwargs
            )
        async with httpx.AsyncClient(timeout=10.0) as client:
            return await client.request(method, url, headers=self._headers(api_key), **kwargs)

    async def _create_order(self, merchant_id: str, amount: int, api_key: str) -> PaymentOrder:
        body = {
            "merchant_id": merchant_id or self._settings.goatx402_merchant_id,
            "chain_id": self._settings.chain_id,
            "token": self._settings.usdt_address,
            "amount": str(amount),
            "metadata": {"hired_agent": merchant_id},
        }
        try:
            response = await self._request("POST", "/orders", api_key, json=body)
        except httpx.HTTPError as exc:
            logger.error("settlement.create_order_failed", merchant_id=merchant_id, error=str(exc))
            raise SettlementFailedError(f"x402 createOrder failed: {exc}") from exc

        if response.is_error:
            logger.error(
                "settlement.create_order_rejected",
                merchant_id=merchant_id,
                status=response.status_code,
            )
            raise SettlementFailedError(
                f"x402 createOrder failed ({response.status_code}): {response.text}"
            )

        try:
            data = response.json()
            return PaymentOrder(
                order_id=str(data["order_id"]),
                pay_to_address=str(data["pay_to_address"]),
                amount=int(data.get("amount", amount)),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise SettlementFailedError(f"x402 createOrder returned a malformed order: {exc}") from exc

    async def _transfer(self, order: PaymentOrder, private_key: str) -> str:
        chain = self._require_chain()
        try:
            tx_hash = await chain.transfer_token(private_key, order.pay_to_address, order.amount)
        except Exception as exc:
            order.advance("call_failed")
            logger.error("settlement.transfer_failed", order_id=order.order_id, error=str(exc))
            raise SettlementFailedError(
                f"USDT transfer for order {order.order_id} failed: {exc}",
                order_id=order.order_id,
            ) from exc

        order.advance("transfer_submitted")
        return tx_hash

    async def _fetch_order_status(self, order_id: str, api_key: str) -> str:
        try:
            response = await self._request("GET", f"/orders/{order_id}", api_key)
        except httpx.HTTPError as exc:
            raise SettlementFailedError(f"x402 poll failed: {exc}", order_id=order_id) from exc

        if response.is_error:
            raise SettlementFailedError(
                f"x402 poll failed ({response.status_code}): {response.text}",
                order_id=order_id,
            )
        try:
            return str(response.json().get("status", ""))
        except (ValueError, AttributeError) as exc:
            raise SettlementFailedError(
                f"x402 poll returned malformed status: {exc}", order_id=order_id
            ) from exc

    async def _wait_for_confirmation(self, order: PaymentOrder, api_key: str) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_delay(self._poll_timeout),
            wait=wait_fixed(self._poll_interval),
            retry=retry_if_result(lambda status: status != OrderStatus.CONFIRMED),
        )
        try:
            await retrying(self._fetch_order_status, order.order_id, api_key)
        except RetryError as exc:
            order.advance("deadline_expired")
            logger.warning(
                "settlement.confirmation_timeout",
                order_id=order.order_id,
                timeout=self._poll_timeout,
            )
            raise SettlementTimeoutError(order.order_id, self._poll_timeout) from exc
        except SettlementFailedError:
            order.advance("call_failed")
            logger.error("settlement.poll_failed", order_id=order.order_id)
            raise

        order.advance("settlement_confirmed")
