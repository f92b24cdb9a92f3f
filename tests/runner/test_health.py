"""Tests for the health monitor."""

from datetime import UTC, datetime

import pytest
from structlog.testing import capture_logs

from sniper.core.interfaces import PriceSource, RpcClient
from sniper.core.types import BotState
from sniper.exec.positions import PositionManager
from sniper.runner.health import HealthMonitor

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class MockComponent:
    """Mock collaborator exposing status getters."""

    def __init__(self, status: dict | None = None, error: Exception | None = None):
        self.status = status or {"ok": True}
        self.error = error

    def _get(self) -> dict:
        if self.error:
            raise self.error
        return self.status

    get_health_status = _get
    get_status = _get
    get_safety_stats = _get


class MockRpc(RpcClient):
    """Mock RPC client for testing."""

    def __init__(self, healthy: bool = True, error: Exception | None = None):
        self.healthy = healthy
        self.error = error

    async def get_balance(self, address: str | None = None) -> float:
        return 1.0

    async def health_check(self) -> bool:
        if self.error:
            raise self.error
        return self.healthy


class MockPriceSource(PriceSource):
    async def get_price(self, token_address: str, bonding_curve_address: str):
        return None


def make_monitor(
    rpc: MockRpc | None = None,
    buyer: MockComponent | None = None,
    state: BotState = BotState.ACTIVE,
    random_value: float = 0.5,
) -> HealthMonitor:
    return HealthMonitor(
        monitor=MockComponent({"connected": True}),
        buyer=buyer or MockComponent({"buys": 3}),
        seller=MockComponent({"sells": 1}),
        safety_checker=MockComponent({"checks": 4}),
        rpc=rpc or MockRpc(),
        positions=PositionManager(seller=None, price_source=MockPriceSource()),
        state_fn=lambda: state,
        simulation_mode=True,
        sample_rate=0.1,
        random_fn=lambda: random_value,
        now_fn=lambda: T0,
    )


class TestHealthMonitor:
    """Test health checks."""

    @pytest.mark.asyncio
    async def test_report_contents(self):
        """Test that a report aggregates every collaborator."""
        health = make_monitor(state=BotState.PAUSED)

        report = await health.check_once()

        assert report.timestamp == T0
        assert report.status is BotState.PAUSED
        assert report.monitoring == {"connected": True}
        assert report.buyer == {"buys": 3}
        assert report.seller == {"sells": 1}
        assert report.safety == {"checks": 4}
        assert report.rpc_healthy is True
        assert report.open_positions == 0
        assert report.simulation_mode is True
        assert health.checks == 1
        assert health.last_report is report

    @pytest.mark.asyncio
    async def test_unhealthy_rpc_is_not_fatal(self):
        """Test that a failing RPC probe is recorded, not raised."""
        health = make_monitor(rpc=MockRpc(healthy=False))

        with capture_logs() as logs:
            report = await health.check_once()

        assert report.rpc_healthy is False
        assert health.rpc_failures == 1
        assert any(
            log["event"] == "Solana connection health check failed" for log in logs
        )

    @pytest.mark.asyncio
    async def test_rpc_exception_is_not_fatal(self):
        health = make_monitor(rpc=MockRpc(error=ConnectionError("refused")))

        report = await health.check_once()

        assert report.rpc_healthy is False
        assert health.rpc_failures == 1

    @pytest.mark.asyncio
    async def test_failing_snapshot(self):
        """Test that a raising status getter is reported as an error entry."""
        health = make_monitor(buyer=MockComponent(error=RuntimeError("buyer gone")))

        report = await health.check_once()

        assert report.buyer == {"error": "buyer gone"}

    @pytest.mark.asyncio
    async def test_sampled_logging(self):
        """Test that only sampled checks are logged."""
        quiet = make_monitor(random_value=0.5)
        with capture_logs() as logs:
            await quiet.check_once()
        assert not any(log["event"] == "Health check" for log in logs)

        loud = make_monitor(random_value=0.05)
        with capture_logs() as logs:
            await loud.check_once()
        entries = [log for log in logs if log["event"] == "Health check"]
        assert len(entries) == 1
        assert entries[0]["report"]["status"] == "ACTIVE"
        assert entries[0]["log_level"] == "info"
