from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import REGISTRY, generate_latest

from txrelay.dependencies import RelayQueueDep, SubmitterDep
from txrelay.monitoring.health_checks import get_all_health

router = APIRouter(tags=["internal"])


@router.get("/health")
async def health_check(submitter: SubmitterDep, queue: RelayQueueDep):
    """Health check endpoint."""
    checks = await get_all_health(submitter, queue)
    all_healthy = all(c.healthy for c in checks)
    return {
        "status": "healthy" if all_healthy else "degraded",
        "relayer": submitter.address,
        "pending": queue.pending,
        "next_nonce": queue.nonce_tracker.current,
        "components": [
            {
                "component": c.component,
                "healthy": c.healthy,
                "latency_ms": c.latency_ms,
                "message": c.message,
            }
            for c in checks
        ],
    }


@router.get("/metrics", response_class=PlainTextResponse)
async def prometheus_metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(
        generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
