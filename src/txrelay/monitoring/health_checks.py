from __future__ import annotations

import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    component: str
    healthy: bool
    latency_ms: float | None = None
    message: str | None = None


async def check_rpc(submitter) -> HealthStatus:
    start = time.monotonic()
    try:
        connected = await submitter.is_connected()
        if not connected:
            return HealthStatus("rpc", False, message="RPC node unreachable")
        return HealthStatus("rpc", True, latency_ms=(time.monotonic() - start) * 1000)
    except Exception as e:
        logger.warning("RPC health check failed", extra={"error": str(e)})
        return HealthStatus("rpc", False, message=str(e))


def check_queue(queue) -> HealthStatus:
    return HealthStatus(
        "relay_queue",
        True,
        message=f"pending={queue.pending} nonce={queue.nonce_tracker.current}",
    )


async def get_all_health(submitter, queue) -> list[HealthStatus]:
    return [await check_rpc(submitter), check_queue(queue)]
