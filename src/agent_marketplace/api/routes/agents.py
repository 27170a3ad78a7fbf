"""Built-in local agents, paid per call through x402.

Routes:
    POST   /api/agents/summarize  — Summarize text into bullet points
    POST   /api/agents/translate  — Translate text (default: French)

Both follow the x402 handshake: a request without an x-payment header gets
402 with the price and payee; a request whose header names a transaction
that does not pay the agent gets 402 "Invalid payment". The header value is
"<txHash>" or "<txHash>:<fromAddress>".
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from agent_marketplace.api.deps import get_app_settings, get_settlement_engine
from agent_marketplace.config import Settings
from agent_marketplace.infrastructure.chain import ChainClient
from agent_marketplace.logging_config import get_logger
from agent_marketplace.schemas.orchestration import LocalAgentRequest, PaymentRequiredResponse
from agent_marketplace.services import completion
from agent_marketplace.services.settlement_service import SettlementEngine

router = APIRouter(prefix="/api/agents", tags=["Local Agents"])
logger = get_logger(__name__)

LOCAL_AGENT_PRICE_USDT = "0.10"


def agent_wallet(configured: str, settings: Settings) -> str:
    """Payee address of a local agent; the orchestrator's own address if unset."""
    if configured:
        return configured
    key = settings.agent_private_key.get_secret_value()
    return ChainClient.address_of(key) if key else ""


async def _check_payment(
    agent_name: str,
    payment_header: str | None,
    wallet: str,
    settings: Settings,
    engine: SettlementEngine,
) -> tuple[dict | None, JSONResponse | None]:
    """Return (proof_of_payment, None) when paid, else (None, 402 response)."""
    if not payment_header:
        body = PaymentRequiredResponse(
            amount=LOCAL_AGENT_PRICE_USDT,
            address=wallet,
            chainId=settings.chain_id,
        )
        return None, JSONResponse(status_code=402, content=body.model_dump())

    tx_hash, _, from_address = payment_header.partition(":")
    if not await engine.verify_payment(tx_hash, wallet, LOCAL_AGENT_PRICE_USDT):
        logger.warning("agents.invalid_payment", agent=agent_name, tx_hash=tx_hash)
        return None, JSONResponse(status_code=402, content={"error": "Invalid payment"})

    proof = {
        "txHash": tx_hash,
        "fromAddress": from_address or None,
        "toAddress": wallet,
        "chainId": settings.chain_id,
    }
    return proof, None


@router.post("/summarize", summary="Summarizer agent")
async def summarize(
    request: LocalAgentRequest,
    x_payment: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
    engine: SettlementEngine = Depends(get_settlement_engine),
):
    wallet = agent_wallet(settings.agent_summarizer_wallet, settings)
    proof, rejection = await _check_payment("Summarizer", x_payment, wallet, settings, engine)
    if rejection is not None:
        return rejection

    summary = await completion.summarize(request.text)
    logger.info("agents.summarized", tx_hash=proof["txHash"])
    return {"result": summary, "agent": "Summarizer", "proofOfPayment": proof}


@router.post("/translate", summary="Translator agent")
async def translate(
    request: LocalAgentRequest,
    x_payment: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
    engine: SettlementEngine = Depends(get_settlement_engine),
):
    wallet = agent_wallet(settings.agent_translator_wallet, settings)
    proof, rejection = await _check_payment("Translator", x_payment, wallet, settings, engine)
    if rejection is not None:
        return rejection

    translation = await completion.translate(request.text, request.target_language)
    logger.info(
        "agents.translated", tx_hash=proof["txHash"], target_language=request.target_language
    )
    return {
        "result": translation,
        "agent": "Translator",
        "targetLanguage": request.target_language,
        "proofOfPayment": proof,
    }
