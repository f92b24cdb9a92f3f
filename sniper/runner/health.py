"""Periodic health sampling of the bot and its collaborators."""

import random
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from ..core.interfaces import Buyer, LaunchMonitor, RpcClient, SafetyChecker, Seller
from ..core.types import BotState, HealthReport
from ..exec.positions import PositionManager

logger = structlog.get_logger(__name__)


class HealthMonitor:
    """Collects health snapshots; logs only a sample of them."""

    def __init__(
        self,
        monitor: LaunchMonitor,
        buyer: Buyer,
        seller: Seller,
        safety_checker: SafetyChecker,
        rpc: RpcClient,
        positions: PositionManager,
        state_fn: Callable[[], BotState],
        simulation_mode: bool,
        sample_rate: float = 0.1,
        random_fn: Callable[[], float] | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize health monitor.

        Args:
            monitor: Launch monitor
            buyer: Buy collaborator
            seller: Sell collaborator
            safety_checker: Safety checker
            rpc: RPC client probed for connectivity
            positions: Position manager
            state_fn: Returns the controller's current state
            simulation_mode: Whether trades are simulated
            sample_rate: Probability that a health check is logged
            random_fn: Optional uniform [0, 1) source (for testing)
            now_fn: Optional function returning the current time (for testing)
        """
        self.monitor = monitor
        self.buyer = buyer
        self.seller = seller
        self.safety_checker = safety_checker
        self.rpc = rpc
        self.positions = positions
        self.simulation_mode = simulation_mode
        self.sample_rate = sample_rate
        self._state_fn = state_fn
        self._random_fn = random_fn or random.random
        self._now_fn = now_fn or (lambda: datetime.now(UTC))

        self.checks = 0
        self.rpc_failures = 0
        self.last_report: HealthReport | None = None

    def snapshot(self, name: str, get: Callable[[], dict[str, Any]]) -> dict[str, Any]:
        """Call a component status getter, reporting its error instead of raising."""
        try:
            return get()
        except Exception as e:
            logger.warning("Health snapshot failed", component=name, error=str(e))
            return {"error": str(e)}

    async def _probe_rpc(self) -> bool:
        try:
            healthy = await self.rpc.health_check()
        except Exception as e:
            logger.warning("Solana connection health check errored", error=str(e))
            return False

        if not healthy:
            logger.warning("Solana connection health check failed")
        return healthy

    async def check_once(self) -> HealthReport:
        """Run one health check."""
        rpc_healthy = await self._probe_rpc()

        report = HealthReport(
            timestamp=self._now_fn(),
            status=self._state_fn(),
            monitoring=self.snapshot("monitor", self.monitor.get_health_status),
            buyer=self.snapshot("buyer", self.buyer.get_status),
            seller=self.snapshot("seller", self.seller.get_status),
            safety=self.snapshot("safety", self.safety_checker.get_safety_stats),
            rpc_healthy=rpc_healthy,
            open_positions=len(self.positions.get_open_positions()),
            simulation_mode=self.simulation_mode,
        )

        self.checks += 1
        if not rpc_healthy:
            self.rpc_failures += 1
        self.last_report = report

        if self._random_fn() < self.sample_rate:
            logger.info("Health check", report=report.model_dump(mode="json"))

        return report
