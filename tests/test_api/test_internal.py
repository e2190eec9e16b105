"""Tests for /api/health and /api/metrics."""
from __future__ import annotations

from typing import get_args, get_type_hints

from txrelay.dependencies import SubmitterDep, get_submitter
from txrelay.evm.submitter import Web3Submitter
from tests.conftest import PLAYER_A, RELAYER


class TestHealth:
    async def test_healthy(self, client):
        r = await client.get("/api/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "healthy"
        assert data["relayer"] == RELAYER
        assert data["pending"] == 0
        assert data["next_nonce"] is None
        assert {c["component"] for c in data["components"]} == {"rpc", "relay_queue"}

    async def test_rpc_down_is_degraded(self, client, chain):
        chain.connected = False
        r = await client.get("/api/health")
        assert r.status_code == 200
        assert r.json()["status"] == "degraded"

    async def test_reports_cached_nonce(self, client):
        await client.post(
            "/api/relayInteraction", json={"playerAddress": PLAYER_A, "action": "click"}
        )
        r = await client.get("/api/health")
        assert r.json()["next_nonce"] == 1


class TestMetrics:
    async def test_metrics_exposed(self, client):
        await client.post(
            "/api/relayInteraction", json={"playerAddress": PLAYER_A, "action": "click"}
        )
        r = await client.get("/api/metrics")
        assert r.status_code == 200
        assert "txrelay_tx_total" in r.text
        assert "txrelay_queue_depth" in r.text


class TestDependencies:
    def test_submitter_dependency_is_web3_submitter(self):
        assert get_args(SubmitterDep)[0] is Web3Submitter
        assert get_type_hints(get_submitter)["return"] is Web3Submitter
