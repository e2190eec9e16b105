"""Sequential nonce tracker for the relayer account.

EVM requires strictly sequential nonces per signer. The tracker caches the
next nonce to use and advances it locally after every allocation, re-reading
the network's pending transaction count on first use and after a conflict.

There is no lock: the tracker belongs to a single RelayQueue whose one consumer
is the only caller, so allocations and refreshes never overlap.
"""
from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class PendingNonceSource(Protocol):
    async def query_pending_nonce(self, address: str) -> int: ...


class NonceTracker:
    def __init__(self, chain: PendingNonceSource, address: str):
        self._chain = chain
        self._address = address
        self._next_nonce: int | None = None
        self.allocations = 0
        self.refreshes = 0

    @property
    def address(self) -> str:
        return self._address

    @property
    def current(self) -> int | None:
        """Next nonce to hand out, or None until the first network query."""
        return self._next_nonce

    async def allocate(self) -> int:
        """Return the next nonce, fetching from chain when nothing is cached."""
        if self._next_nonce is None:
            self._next_nonce = await self._query()
        nonce = self._next_nonce
        self._next_nonce += 1
        self.allocations += 1
        return nonce

    async def refresh(self) -> int:
        """Overwrite the cache with the network's pending count."""
        stale = self._next_nonce
        self._next_nonce = await self._query()
        self.refreshes += 1
        logger.info(
            "Nonce refreshed",
            extra={"address": self._address, "stale": stale, "fresh": self._next_nonce},
        )
        return self._next_nonce

    def invalidate(self) -> None:
        """Forget the cached nonce; the next allocate() re-fetches from chain."""
        self._next_nonce = None

    async def _query(self) -> int:
        return int(await self._chain.query_pending_nonce(self._address))
