"""Chain submitter: signs relay calls with the relayer key and broadcasts them.

The relay queue depends only on the ChainSubmitter protocol. Web3Submitter is
the AsyncWeb3 implementation used in production; tests substitute fakes.
"""
from __future__ import annotations

import logging
import time
from typing import Protocol, runtime_checkable

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from txrelay.actions import Operation, PreparedCall
from txrelay.config import Settings
from txrelay.errors import NonceConflictError, SubmissionError
from txrelay.evm.abi import CONTRACT_ABI, load_abi
from txrelay.monitoring.metrics import submit_latency_seconds

logger = logging.getLogger(__name__)

# Node error texts meaning the nonce we sent is already taken
STALE_NONCE_MARKERS = (
    "nonce too low",
    "nonce has already been used",
    "nonce already used",
)


def is_stale_nonce_error(error: BaseException) -> bool:
    """Textual check for a stale-nonce rejection, case-insensitive."""
    if isinstance(error, NonceConflictError):
        return True
    text = str(error).lower()
    return any(marker in text for marker in STALE_NONCE_MARKERS)


@runtime_checkable
class ChainSubmitter(Protocol):
    @property
    def address(self) -> str: ...

    async def submit(self, operation: Operation, call: PreparedCall, nonce: int) -> str: ...

    async def query_pending_nonce(self, address: str) -> int: ...

    def is_stale_nonce(self, error: BaseException) -> bool: ...


class Web3Submitter:
    """ChainSubmitter backed by AsyncWeb3 and a local eth_account signer."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._w3: AsyncWeb3 | None = None
        self._signer = Account.from_key(settings.signer_key)
        self._contract = None
        self._initialized = False

    # ── Lifecycle ──

    async def initialize(self) -> None:
        """Create AsyncWeb3 and bind the contract."""
        abi = load_abi(self._settings.abi_path) if self._settings.abi_path else CONTRACT_ABI
        self._w3 = AsyncWeb3(AsyncHTTPProvider(self._settings.rpc_url))
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(self._settings.contract_address),
            abi=abi,
        )
        self._initialized = True
        logger.info(
            "Web3Submitter initialized",
            extra={
                "relayer": self._signer.address,
                "contract": self._settings.contract_address,
                "chain_id": self._settings.chain_id,
            },
        )

    async def close(self) -> None:
        """Drop the provider session."""
        if self._w3 is not None:
            provider = self._w3.provider
            disconnect = getattr(provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()
        self._w3 = None
        self._contract = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    @property
    def address(self) -> str:
        return self._signer.address

    # ── Health ──

    async def is_connected(self) -> bool:
        """Check if the RPC node is reachable."""
        await self._ensure_initialized()
        return await self._w3.is_connected()

    # ── ChainSubmitter ──

    async def query_pending_nonce(self, address: str) -> int:
        await self._ensure_initialized()
        return await self._w3.eth.get_transaction_count(address, "pending")

    def is_stale_nonce(self, error: BaseException) -> bool:
        return is_stale_nonce_error(error)

    async def submit(self, operation: Operation, call: PreparedCall, nonce: int) -> str:
        """Build, sign and broadcast one contract call with an explicit nonce."""
        await self._ensure_initialized()
        fn = getattr(self._contract.functions, operation.contract_fn)(*call.args)

        start = time.monotonic()
        base_fee = await self._get_base_fee()
        priority_fee = self._w3.to_wei(self._settings.priority_fee_gwei, "gwei")
        tx = await fn.build_transaction(
            {
                "from": self._signer.address,
                "nonce": nonce,
                "chainId": self._settings.chain_id,
                "maxPriorityFeePerGas": priority_fee,
                "maxFeePerGas": base_fee * 2 + priority_fee,
            }
        )
        signed = self._signer.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        submit_latency_seconds.labels(operation=operation.name.lower()).observe(
            time.monotonic() - start
        )

        if self._settings.confirm_receipts:
            await self._confirm(tx_hash, operation, nonce)
        return Web3.to_hex(tx_hash)

    # ── Internal ──

    async def _get_base_fee(self) -> int:
        latest = await self._w3.eth.get_block("latest")
        return latest.get("baseFeePerGas", 0)

    async def _confirm(self, tx_hash, operation: Operation, nonce: int) -> None:
        receipt = await self._w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._settings.confirm_timeout
        )
        if receipt["status"] != 1:
            reason = await self._get_revert_reason(tx_hash, receipt)
            raise SubmissionError(operation.contract_fn, f"reverted: {reason}", nonce=nonce)

    async def _get_revert_reason(self, tx_hash, receipt) -> str:
        try:
            tx = await self._w3.eth.get_transaction(tx_hash)
            await self._w3.eth.call(
                {"from": tx["from"], "to": tx["to"], "data": tx["input"], "value": tx["value"]},
                block_identifier=receipt["blockNumber"] - 1,
            )
            return "Unknown revert"
        except Exception as e:
            return str(e)
