"""Single-consumer relay queue.

Requests are processed strictly in arrival order, one submission at a time, so
the relayer's nonce is only ever touched by one coroutine. Per request:

    Queued -> Submitting -> Succeeded
                         -> RetryingOnce -> Submitting -> Succeeded | Failed
                         -> Failed

A stale-nonce rejection triggers one refresh-and-retry with the same prepared
call. Every other failure, and any failure of the retry, is terminal for that
request only; the queue moves on to the next entry.
"""
from __future__ import annotations

import asyncio
import enum
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field

from txrelay.actions import PreparedCall, translate
from txrelay.errors import NonceConflictError, RelayError, SubmissionError, ValidationError
from txrelay.evm.nonce_tracker import NonceTracker
from txrelay.evm.submitter import ChainSubmitter
from txrelay.monitoring.metrics import nonce_refresh_total, queue_depth, tx_total

logger = logging.getLogger(__name__)


class EntryState(str, enum.Enum):
    QUEUED = "queued"
    SUBMITTING = "submitting"
    RETRYING_ONCE = "retrying_once"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayRequest:
    player_address: str
    action: str
    score: object = None


@dataclass(frozen=True)
class RelayOutcome:
    """Success-or-error result delivered to the caller exactly once."""

    tx_hash: str | None = None
    error: RelayError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error
        return self.tx_hash


@dataclass
class QueueEntry:
    request: RelayRequest
    index: int
    future: asyncio.Future
    state: EntryState = EntryState.QUEUED
    nonces: list[int] = field(default_factory=list)


class RelayQueue:
    def __init__(self, submitter: ChainSubmitter, nonce_tracker: NonceTracker):
        self._submitter = submitter
        self._nonce = nonce_tracker
        self._entries: deque[QueueEntry] = deque()
        self._counter = itertools.count()
        self._draining = False
        self._drain_task: asyncio.Task | None = None

    @property
    def nonce_tracker(self) -> NonceTracker:
        return self._nonce

    @property
    def pending(self) -> int:
        return len(self._entries)

    @property
    def draining(self) -> bool:
        return self._draining

    # ── Producers ──

    def enqueue(self, request: RelayRequest) -> asyncio.Future:
        """Append a request; the returned future resolves with a RelayOutcome."""
        future = asyncio.get_running_loop().create_future()
        entry = QueueEntry(request=request, index=next(self._counter), future=future)
        self._entries.append(entry)
        queue_depth.set(len(self._entries))
        logger.debug(
            "Request queued",
            extra={"index": entry.index, "action": request.action, "pending": len(self._entries)},
        )
        return future

    def schedule_drain(self) -> asyncio.Task | None:
        """Start a background drain unless one is already running."""
        if self._draining or (self._drain_task is not None and not self._drain_task.done()):
            return self._drain_task
        self._drain_task = asyncio.create_task(self.drain())
        return self._drain_task

    async def submit(self, request: RelayRequest) -> RelayOutcome:
        """Enqueue, make sure the queue is draining, and wait for the outcome."""
        future = self.enqueue(request)
        self.schedule_drain()
        return await future

    # ── Consumer ──

    async def drain(self) -> None:
        """Process entries until the queue is empty. Reentrant calls are no-ops."""
        if self._draining:
            return
        self._draining = True
        entry: QueueEntry | None = None
        try:
            while self._entries:
                entry = self._entries.popleft()
                queue_depth.set(len(self._entries))
                try:
                    outcome = await self._process(entry)
                except Exception as e:
                    logger.exception("Unexpected error relaying entry %d", entry.index)
                    entry.state = EntryState.FAILED
                    self._nonce.invalidate()
                    outcome = RelayOutcome(error=SubmissionError("relay", str(e), cause=e))
                if not entry.future.done():
                    entry.future.set_result(outcome)
        finally:
            self._draining = False
            # only reached with work left when the drain task was cancelled
            stranded = [e for e in [entry, *self._entries] if e is not None and not e.future.done()]
            self._entries.clear()
            queue_depth.set(0)
            if stranded:
                self._nonce.invalidate()
                logger.error("Drain stopped with %d unresolved entries", len(stranded))
            for e in stranded:
                e.state = EntryState.FAILED
                e.future.set_result(
                    RelayOutcome(error=SubmissionError("relay", "relay queue stopped"))
                )

    async def close(self) -> None:
        """Wait for an in-flight drain to finish."""
        if self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    async def _process(self, entry: QueueEntry) -> RelayOutcome:
        req = entry.request
        try:
            call = translate(req.player_address, req.action, req.score)
        except ValidationError as e:
            entry.state = EntryState.FAILED
            logger.info(
                "Request rejected",
                extra={"index": entry.index, "action": req.action, "error": str(e)},
            )
            return RelayOutcome(error=e)

        op = call.operation.name.lower()
        try:
            tx_hash = await self._attempt(entry, call)
        except SubmissionError as e:
            entry.state = EntryState.FAILED
            # next allocation re-reads the pending count
            self._nonce.invalidate()
            tx_total.labels(operation=op, status="failure").inc()
            logger.warning(
                "Relay failed",
                extra={
                    "index": entry.index,
                    "operation": op,
                    "nonces": entry.nonces,
                    "error": str(e),
                },
            )
            return RelayOutcome(error=e)

        entry.state = EntryState.SUCCEEDED
        tx_total.labels(operation=op, status="success").inc()
        logger.info(
            "Relay succeeded",
            extra={
                "index": entry.index,
                "operation": op,
                "nonce": entry.nonces[-1],
                "tx_hash": tx_hash,
            },
        )
        return RelayOutcome(tx_hash=tx_hash)

    async def _attempt(self, entry: QueueEntry, call: PreparedCall) -> str:
        """Submit once, refreshing the nonce and retrying once on a conflict."""
        fn = call.operation.contract_fn
        entry.state = EntryState.SUBMITTING
        try:
            return await self._send(entry, call)
        except SubmissionError:
            raise
        except Exception as e:
            if not self._submitter.is_stale_nonce(e):
                raise SubmissionError(fn, str(e), nonce=_last(entry), cause=e) from e
            conflict = NonceConflictError(_last(entry), cause=e)

        entry.state = EntryState.RETRYING_ONCE
        logger.warning(
            "Nonce conflict, refreshing and retrying once",
            extra={"index": entry.index, "nonce": conflict.nonce, "error": str(conflict.cause)},
        )
        try:
            await self._nonce.refresh()
            nonce_refresh_total.inc()
        except Exception as e:
            raise SubmissionError(fn, f"nonce refresh failed: {e}", cause=e) from e

        entry.state = EntryState.SUBMITTING
        try:
            return await self._send(entry, call)
        except SubmissionError:
            raise
        except Exception as e:
            if self._submitter.is_stale_nonce(e):
                raise SubmissionError(
                    fn,
                    f"nonce conflict persisted after refresh: {e}",
                    nonce=_last(entry),
                    cause=NonceConflictError(_last(entry), cause=e),
                ) from e
            raise SubmissionError(fn, str(e), nonce=_last(entry), cause=e) from e

    async def _send(self, entry: QueueEntry, call: PreparedCall) -> str:
        try:
            nonce = await self._nonce.allocate()
        except Exception as e:
            raise SubmissionError(
                call.operation.contract_fn, f"nonce query failed: {e}", cause=e
            ) from e
        entry.nonces.append(nonce)
        return await self._submitter.submit(call.operation, call, nonce)


def _last(entry: QueueEntry) -> int | None:
    return entry.nonces[-1] if entry.nonces else None
