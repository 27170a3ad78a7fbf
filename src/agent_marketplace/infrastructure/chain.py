"""GOAT Network chain access via web3.py (AsyncWeb3).

Two contracts are touched:
    - the ERC-8004 identity registry (ERC-721 enumerable + tokenURI) for
      agent discovery,
    - the USDT ERC-20 token for x402 transfers and Transfer event checks.

Every call is non-blocking so registry reads, transfers and receipt lookups
never stall the event loop while other agents are being hired.

Usage:
    chain = ChainClient(rpc_url=settings.goat_rpc_url, chain_id=48816, ...)
    tx_hash = await chain.transfer_token(private_key, "0xabc...", 100_000)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound, Web3ValidationError, Web3ValueError
from web3.logs import DISCARD

from agent_marketplace.logging_config import get_logger

logger = get_logger(__name__)

TX_HASH_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")

ERC20_ABI = [
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
    },
]

IDENTITY_REGISTRY_ABI = [
    {
        "type": "function",
        "name": "totalSupply",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "tokenByIndex",
        "stateMutability": "view",
        "inputs": [{"name": "index", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "tokenURI",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "string"}],
    },
]


@dataclass(frozen=True)
class TransferEvent:
    """A decoded ERC-20 Transfer log."""

    sender: str
    to: str
    value: int


class ChainClient:
    """Thin async wrapper around the registry and token contracts."""

    def __init__(
        self,
        rpc_url: str,
        chain_id: int,
        token_address: str = "",
        registry_address: str = "",
        receipt_timeout_seconds: float = 120.0,
    ) -> None:
        self._rpc_url = rpc_url
        self._chain_id = chain_id
        self._token_address = token_address
        self._registry_address = registry_address
        self._receipt_timeout = receipt_timeout_seconds
        self._w3: AsyncWeb3 | None = None

    @property
    def has_registry(self) -> bool:
        return bool(self._registry_address)

    def _get_w3(self) -> AsyncWeb3:
        if self._w3 is None:
            self._w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self._rpc_url))
        return self._w3

    def _registry(self):
        w3 = self._get_w3()
        return w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self._registry_address),
            abi=IDENTITY_REGISTRY_ABI,
        )

    def _token(self):
        w3 = self._get_w3()
        return w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self._token_address),
            abi=ERC20_ABI,
        )

    # ------------------------------------------------------------------
    # Identity registry
    # ------------------------------------------------------------------

    async def total_agents(self) -> int:
        return int(await self._registry().functions.totalSupply().call())

    async def token_id_at(self, index: int) -> int:
        return int(await self._registry().functions.tokenByIndex(index).call())

    async def token_uri(self, token_id: int) -> str:
        return str(await self._registry().functions.tokenURI(token_id).call())

    # ------------------------------------------------------------------
    # USDT token
    # ------------------------------------------------------------------

    @staticmethod
    def address_of(private_key: str) -> str:
        """Return the checksummed address controlled by a private key."""
        return Account.from_key(private_key).address

    async def transfer_token(self, private_key: str, to_address: str, amount: int) -> str:
        """Send an ERC-20 transfer and wait for it to be mined.

        Returns:
            The 0x-prefixed transaction hash.

        Raises:
            RuntimeError: If the transaction is mined but reverted.
        """
        w3 = self._get_w3()
        account = Account.from_key(private_key)
        nonce = await w3.eth.get_transaction_count(account.address)

        tx = await self._token().functions.transfer(
            AsyncWeb3.to_checksum_address(to_address), amount
        ).build_transaction({
            "from": account.address,
            "nonce": nonce,
            "chainId": self._chain_id,
        })
        signed = account.sign_transaction(tx)
        sent_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = await w3.eth.wait_for_transaction_receipt(
            sent_hash, timeout=self._receipt_timeout
        )

        tx_hash = AsyncWeb3.to_hex(receipt["transactionHash"])
        if receipt.get("status") == 0:
            raise RuntimeError(f"USDT transfer {tx_hash} reverted")

        logger.info("chain.transfer_mined", tx_hash=tx_hash, to=to_address, amount=amount)
        return tx_hash

    async def transfer_events(self, tx_hash: str) -> list[TransferEvent] | None:
        """Decode the ERC-20 Transfer events of a mined transaction.

        Returns:
            The decoded events, or None when no receipt exists for the hash.
            A string that is not a 32-byte hex hash has no receipt either.
        """
        if not TX_HASH_PATTERN.fullmatch(tx_hash):
            logger.info("chain.malformed_tx_hash", tx_hash=tx_hash[:80])
            return None

        w3 = self._get_w3()
        try:
            receipt = await w3.eth.get_transaction_receipt(tx_hash)
        except (TransactionNotFound, Web3ValueError, Web3ValidationError):
            return None

        events = self._token().events.Transfer().process_receipt(receipt, errors=DISCARD)
        return [
            TransferEvent(
                sender=str(event["args"]["from"]),
                to=str(event["args"]["to"]),
                value=int(event["args"]["value"]),
            )
            for event in events
        ]
