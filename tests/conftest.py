"""Shared test fixtures.

The chain is replaced by FakeChain, an in-memory ChainSubmitter that behaves
like a node's nonce check (rejects nonces below its pending count with
"nonce too low") and records every submission attempt. The FastAPI app runs
with a no-op lifespan and the fake wired onto app.state.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

from txrelay.config import Settings
from txrelay.evm.nonce_tracker import NonceTracker
from txrelay.evm.submitter import is_stale_nonce_error
from txrelay.services.relay_queue import RelayQueue

RELAYER = "0x9999999999999999999999999999999999999999"
PLAYER_A = "0x1111111111111111111111111111111111111111"
PLAYER_B = "0x2222222222222222222222222222222222222222"
CONTRACT = "0x3333333333333333333333333333333333333333"
TEST_KEY = "0x" + "4f" * 32


class FakeChain:
    """In-memory ChainSubmitter."""

    def __init__(self, pending_nonce: int = 0):
        self.address = RELAYER
        self.pending_nonce = pending_nonce
        self.submitted: list[tuple] = []  # (operation, call, nonce) per attempt
        self.failures: list[BaseException | None] = []  # forced results, in order
        self.queries = 0
        self.query_error: BaseException | None = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.connected = True

    async def query_pending_nonce(self, address: str) -> int:
        self.queries += 1
        await asyncio.sleep(0)
        if self.query_error is not None:
            raise self.query_error
        return self.pending_nonce

    async def submit(self, operation, call, nonce: int) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.submitted.append((operation, call, nonce))
            if self.failures:
                forced = self.failures.pop(0)
                if forced is not None:
                    raise forced
            if nonce < self.pending_nonce:
                raise ValueError({"code": -32000, "message": "nonce too low"})
            self.pending_nonce = nonce + 1
            return "0x" + f"{nonce:064x}"
        finally:
            self.in_flight -= 1

    def is_stale_nonce(self, error: BaseException) -> bool:
        return is_stale_nonce_error(error)

    async def is_connected(self) -> bool:
        return self.connected


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def tracker(chain) -> NonceTracker:
    return NonceTracker(chain, chain.address)


@pytest.fixture
def queue(chain, tracker) -> RelayQueue:
    return RelayQueue(chain, tracker)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        relayer_pk=TEST_KEY,
        rpc_url="http://localhost:8545",
        chain_id=10143,
        contract_address=CONTRACT,
        log_format="text",
    )


# ---------------------------------------------------------------------------
# FastAPI app + httpx client
# ---------------------------------------------------------------------------

@asynccontextmanager
async def _noop_lifespan(app):
    yield


@pytest.fixture
async def app(settings, chain, queue):
    """Relay app with the fake chain and no lifespan."""
    from txrelay.main import create_app

    application = create_app(settings)
    application.router.lifespan_context = _noop_lifespan
    application.state.submitter = chain
    application.state.relay_queue = queue
    yield application


@pytest.fixture
async def client(app) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
