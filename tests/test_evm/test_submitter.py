"""Tests for txrelay.evm.submitter with the web3 layer mocked out."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3

from txrelay.actions import Operation, PreparedCall
from txrelay.errors import NonceConflictError, SubmissionError
from txrelay.evm.submitter import ChainSubmitter, Web3Submitter, is_stale_nonce_error
from tests.conftest import PLAYER_A, FakeChain

TX_HASH = b"\xab" * 32


class TestStaleNonceDetection:
    @pytest.mark.parametrize(
        "error",
        [
            ValueError("Nonce too low"),
            ValueError({"code": -32000, "message": "nonce too low: next nonce 5, tx nonce 3"}),
            RuntimeError("NONCE HAS ALREADY BEEN USED"),
            NonceConflictError(4),
        ],
    )
    def test_stale(self, error):
        assert is_stale_nonce_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            ValueError("insufficient funds for gas * price + value"),
            RuntimeError("execution reverted"),
            TimeoutError("request timed out"),
            ValueError("already known"),
        ],
    )
    def test_not_stale(self, error):
        assert not is_stale_nonce_error(error)


def test_fake_chain_satisfies_protocol():
    assert isinstance(FakeChain(), ChainSubmitter)


def _wired(settings, *, receipt_status: int | None = None) -> tuple[Web3Submitter, MagicMock]:
    sub = Web3Submitter(settings)
    w3 = MagicMock()
    w3.to_wei = Web3.to_wei
    w3.eth.get_block = AsyncMock(return_value={"baseFeePerGas": 1_000})
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    w3.eth.get_transaction_count = AsyncMock(return_value=12)
    w3.eth.wait_for_transaction_receipt = AsyncMock(
        return_value={"status": receipt_status if receipt_status is not None else 1, "blockNumber": 9}
    )
    w3.eth.get_transaction = AsyncMock(side_effect=ValueError("execution reverted: game closed"))

    fn = MagicMock()
    fn.build_transaction = AsyncMock(return_value={"nonce": 0})
    contract = MagicMock()
    contract.functions.click = MagicMock(return_value=fn)
    contract.functions.submitScore = MagicMock(return_value=fn)

    signer = MagicMock()
    signer.address = sub.address
    signer.sign_transaction = MagicMock(return_value=MagicMock(raw_transaction=b"\x02raw"))

    sub._w3 = w3
    sub._contract = contract
    sub._signer = signer
    sub._initialized = True
    return sub, contract


class TestWeb3Submitter:
    def test_address_derived_from_key(self, settings):
        sub = Web3Submitter(settings)
        assert Web3.is_checksum_address(sub.address)

    async def test_submit_click(self, settings):
        sub, contract = _wired(settings)
        call = PreparedCall(Operation.INCREMENT_COUNTER, PLAYER_A)

        tx_hash = await sub.submit(Operation.INCREMENT_COUNTER, call, 5)

        assert tx_hash == "0x" + "ab" * 32
        contract.functions.click.assert_called_once_with(PLAYER_A)
        tx_params = contract.functions.click.return_value.build_transaction.call_args.args[0]
        assert tx_params["nonce"] == 5
        assert tx_params["chainId"] == settings.chain_id
        assert tx_params["maxFeePerGas"] == 2_000 + tx_params["maxPriorityFeePerGas"]

    async def test_submit_score_argument_order(self, settings):
        sub, contract = _wired(settings)
        call = PreparedCall(Operation.RECORD_SCORE, PLAYER_A, 42)

        await sub.submit(Operation.RECORD_SCORE, call, 0)

        contract.functions.submitScore.assert_called_once_with(42, PLAYER_A)

    async def test_query_pending_nonce(self, settings):
        sub, _ = _wired(settings)
        assert await sub.query_pending_nonce(sub.address) == 12
        sub._w3.eth.get_transaction_count.assert_awaited_once_with(sub.address, "pending")

    async def test_send_error_propagates(self, settings):
        sub, _ = _wired(settings)
        sub._w3.eth.send_raw_transaction = AsyncMock(side_effect=ValueError("nonce too low"))
        call = PreparedCall(Operation.INCREMENT_COUNTER, PLAYER_A)

        with pytest.raises(ValueError) as exc_info:
            await sub.submit(Operation.INCREMENT_COUNTER, call, 1)
        assert sub.is_stale_nonce(exc_info.value)

    async def test_no_receipt_wait_by_default(self, settings):
        sub, _ = _wired(settings)
        await sub.submit(
            Operation.INCREMENT_COUNTER, PreparedCall(Operation.INCREMENT_COUNTER, PLAYER_A), 0
        )
        sub._w3.eth.wait_for_transaction_receipt.assert_not_awaited()

    async def test_reverted_receipt_raises(self, settings):
        settings.confirm_receipts = True
        sub, _ = _wired(settings, receipt_status=0)
        call = PreparedCall(Operation.RECORD_SCORE, PLAYER_A, 1)

        with pytest.raises(SubmissionError, match="game closed"):
            await sub.submit(Operation.RECORD_SCORE, call, 3)

    async def test_confirmed_receipt_returns_hash(self, settings):
        settings.confirm_receipts = True
        sub, _ = _wired(settings, receipt_status=1)
        call = PreparedCall(Operation.RECORD_SCORE, PLAYER_A, 1)

        assert await sub.submit(Operation.RECORD_SCORE, call, 3) == "0x" + "ab" * 32
