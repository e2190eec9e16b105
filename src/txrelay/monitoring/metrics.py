from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Relay metrics
tx_total = Counter("txrelay_tx_total", "Relayed transactions", ["operation", "status"])
nonce_refresh_total = Counter("txrelay_nonce_refresh_total", "Nonce refreshes after a conflict")
queue_depth = Gauge("txrelay_queue_depth", "Requests waiting in the relay queue")

# Chain metrics
submit_latency_seconds = Histogram(
    "txrelay_submit_latency_seconds", "Build/sign/broadcast latency", ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
