"""Bot lifecycle controller: start/stop/pause, launch handling and periodic loops."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from ..config.settings import AppSettings
from ..core.errors import ConfigurationError, ConnectivityError
from ..core.interfaces import (
    AlertSink,
    Buyer,
    LaunchMonitor,
    PriceSource,
    RpcClient,
    SafetyChecker,
    Seller,
    TokenValidator,
)
from ..core.types import BotState, NewTokenEvent
from ..data.prices import ValidatorPriceSource
from ..exec.executor import TradeExecutor
from ..exec.positions import PositionManager
from ..filters.launch_gate import EventGate, GateThresholds
from .health import HealthMonitor

logger = structlog.get_logger(__name__)


class BotController:
    """Owns the bot state machine and everything scheduled while it runs.

    States are STOPPED (initial), ACTIVE and PAUSED. ``start()`` moves
    STOPPED to ACTIVE, ``pause()``/``resume()`` toggle ACTIVE and PAUSED, and
    ``stop()`` returns to STOPPED from anywhere. Launch events are only
    traded while ACTIVE; the position loop only ticks while ACTIVE; the
    health loop ticks whenever the bot is started.
    """

    def __init__(
        self,
        settings: AppSettings,
        monitor: LaunchMonitor,
        validator: TokenValidator,
        safety_checker: SafetyChecker,
        buyer: Buyer,
        seller: Seller,
        rpc: RpcClient,
        price_source: PriceSource | None = None,
        alerts: AlertSink | None = None,
        now_fn: Callable[[], datetime] | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        random_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the controller and register for launch events.

        Args:
            settings: Application settings
            monitor: Launch event source
            validator: Token analysis collaborator
            safety_checker: Independent safety checker used by the gate
            buyer: Buy collaborator
            seller: Sell collaborator
            rpc: RPC client used for validation, balance and health probes
            price_source: Price source for open positions (defaults to the
                validator's analysis price)
            alerts: Optional alert sink
            now_fn: Optional function returning the current time (for testing)
            sleep_fn: Optional coroutine function used to wait between
                periodic ticks (for testing)
            random_fn: Optional uniform [0, 1) source for health log sampling
        """
        self.settings = settings
        self.monitor = monitor
        self.validator = validator
        self.buyer = buyer
        self.seller = seller
        self.rpc = rpc
        self.alerts = alerts
        self._now_fn = now_fn or (lambda: datetime.now(UTC))
        self._sleep_fn = sleep_fn or asyncio.sleep

        self.positions = PositionManager(
            seller=seller,
            price_source=price_source or ValidatorPriceSource(validator),
            trailing_stop_percentage=settings.trailing_stop_percentage,
            alerts=alerts,
            now_fn=self._now_fn,
        )
        self.gate = EventGate(GateThresholds.from_settings(settings), safety_checker)
        self.executor = TradeExecutor(
            buyer=buyer,
            positions=self.positions,
            take_profit_percentage=settings.take_profit_percentage,
            stop_loss_percentage=settings.stop_loss_percentage,
            alerts=alerts,
            now_fn=self._now_fn,
        )
        self.health = HealthMonitor(
            monitor=monitor,
            buyer=buyer,
            seller=seller,
            safety_checker=safety_checker,
            rpc=rpc,
            positions=self.positions,
            state_fn=lambda: self._state,
            simulation_mode=settings.simulation_mode,
            sample_rate=settings.health_log_sample_rate,
            random_fn=random_fn,
            now_fn=self._now_fn,
        )

        self._state = BotState.STOPPED
        self._run = 0
        self._lifecycle_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._stopped.set()
        self._events: asyncio.Queue[NewTokenEvent] = asyncio.Queue(
            maxsize=settings.event_queue_size
        )
        self._tasks: dict[str, asyncio.Task] = {}
        self._event_tasks: set[asyncio.Task] = set()
        self._stats = {
            "received": 0,
            "dropped": 0,
            "analysis_failed": 0,
            "filtered": 0,
            "traded": 0,
            "errors": 0,
        }

        monitor.on_new_token(self._on_new_token)

    @property
    def state(self) -> BotState:
        return self._state

    async def start(self) -> None:
        """Validate configuration, subscribe to launches and start the loops.

        A second call while the bot is running is ignored.

        Raises:
            ConfigurationError: If the RPC URL or private key is missing
            ConnectivityError: If the RPC node cannot be reached
        """
        async with self._lifecycle_lock:
            if self._state is not BotState.STOPPED:
                logger.warning("Bot already running, ignoring start", state=self._state.value)
                return

            logger.info(
                "Starting sniper bot", simulation_mode=self.settings.simulation_mode
            )

            try:
                await self._validate_configuration()
                await self.monitor.start_monitoring()
            except Exception as e:
                logger.error("Failed to start bot", error=str(e))
                self._state = BotState.STOPPED
                raise

            self._state = BotState.ACTIVE
            self._run += 1
            self._stopped.clear()
            self._tasks = {
                "events": asyncio.create_task(
                    self._dispatch_events(), name="launch-dispatch"
                ),
                "positions": asyncio.create_task(
                    self._run_periodic(
                        "position analysis",
                        self.settings.position_check_interval_seconds,
                        self._position_tick,
                    ),
                    name="position-analysis",
                ),
                "health": asyncio.create_task(
                    self._run_periodic(
                        "health check",
                        self.settings.health_check_interval_seconds,
                        self.health.check_once,
                    ),
                    name="health-check",
                ),
            }

        logger.info(
            "Sniper bot started successfully",
            simulation_mode=self.settings.simulation_mode,
            rpc_url=self.settings.rpc_url,
        )

        if not self.settings.simulation_mode:
            await self._log_initial_balance()

        mode = "simulation" if self.settings.simulation_mode else "live"
        await self._notify(f"🤖 Sniper bot started in {mode} mode")

    async def _validate_configuration(self) -> None:
        if not self.settings.rpc_url:
            raise ConfigurationError("rpc_url is required")

        if not self.settings.simulation_mode and not self.settings.has_private_key:
            raise ConfigurationError(
                "private_key is required when not in simulation mode"
            )

        try:
            healthy = await self.rpc.health_check()
        except Exception as e:
            raise ConnectivityError(f"Cannot connect to Solana network: {e}") from e

        if not healthy:
            raise ConnectivityError(
                f"Cannot connect to Solana network at {self.settings.rpc_url}"
            )

        logger.info("Configuration validated successfully")

    async def _log_initial_balance(self) -> None:
        try:
            balance = await self.rpc.get_balance()
        except Exception as e:
            logger.warning("Failed to fetch initial wallet balance", error=str(e))
            return
        logger.info("Initial wallet balance", balance_sol=round(balance, 4))

    async def stop(self) -> None:
        """Stop everything. Safe to call repeatedly."""
        async with self._lifecycle_lock:
            if self._state is BotState.STOPPED and not self._tasks:
                logger.debug("Bot already stopped")
                return

            logger.info("Stopping sniper bot")

            # In-flight launch handlers check the state and stand down
            self._state = BotState.STOPPED

            tasks = list(self._tasks.values())
            self._tasks = {}
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._drain_events()

            await self._teardown("monitor", self.monitor.stop_monitoring)
            await self._teardown("buyer", self.buyer.emergency_stop)
            await self._teardown("seller", self.seller.emergency_stop)
            await self._teardown("positions", self.positions.cancel_pending_sells)

            self._stopped.set()

        logger.info("Sniper bot stopped successfully")
        await self._notify("🛑 Sniper bot stopped")

    async def _teardown(self, component: str, step: Callable[[], Awaitable[Any]]) -> None:
        try:
            await step()
        except Exception as e:
            logger.error("Error during shutdown", component=component, error=str(e))

    def _drain_events(self) -> None:
        while True:
            try:
                self._events.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._events.task_done()

    async def wait_stopped(self) -> None:
        """Wait until the bot has been stopped."""
        await self._stopped.wait()

    def pause(self) -> bool:
        """Pause trading; monitoring and health checks continue."""
        if self._state is not BotState.ACTIVE:
            logger.warning("Cannot pause, bot is not active", state=self._state.value)
            return False

        self._state = BotState.PAUSED
        logger.info("Trading paused - monitoring continues")
        return True

    def resume(self) -> bool:
        """Resume trading after a pause."""
        if self._state is not BotState.PAUSED:
            logger.warning("Cannot resume, bot is not paused", state=self._state.value)
            return False

        self._state = BotState.ACTIVE
        logger.info("Trading resumed")
        return True

    def _on_new_token(self, event: NewTokenEvent) -> None:
        self._stats["received"] += 1

        if self._state is not BotState.ACTIVE:
            self._stats["dropped"] += 1
            logger.debug(
                "Launch ignored, bot not active",
                token_address=event.token_address,
                state=self._state.value,
            )
            return

        try:
            self._events.put_nowait(event)
        except asyncio.QueueFull:
            self._stats["dropped"] += 1
            logger.warning(
                "Launch queue full, dropping event",
                token_address=event.token_address,
                queue_size=self._events.maxsize,
            )

    async def _dispatch_events(self) -> None:
        while True:
            event = await self._events.get()
            task = asyncio.create_task(
                self._handle_queued(event), name=f"launch-{event.token_address}"
            )
            self._event_tasks.add(task)
            task.add_done_callback(self._event_tasks.discard)

    async def _handle_queued(self, event: NewTokenEvent) -> None:
        try:
            await self.process_launch(event)
        finally:
            self._events.task_done()

    async def join_events(self) -> None:
        """Wait until every queued launch event has been processed."""
        await self._events.join()

    async def process_launch(self, event: NewTokenEvent) -> None:
        """Run one launch through analysis, the gate and the executor."""
        token_address = event.token_address
        run = self._run

        if self._state is not BotState.ACTIVE:
            self._stats["dropped"] += 1
            logger.debug("Launch dropped, bot not active", token_address=token_address)
            return

        logger.info(
            "Processing new token launch",
            token_address=token_address,
            creator=event.creator,
            detected_at=event.timestamp.isoformat(),
        )

        try:
            outcome = await self.validator.analyze_token(
                token_address, event.bonding_curve_address
            )
            if not outcome.ok:
                self._stats["analysis_failed"] += 1
                logger.warning(
                    "Failed to analyze token, skipping",
                    token_address=token_address,
                    error=outcome.error,
                )
                return

            analysis = outcome.analysis
            decision = await self.gate.evaluate(analysis)
            if not decision.accepted:
                self._stats["filtered"] += 1
                logger.info(
                    "Token filtered out",
                    token_address=token_address,
                    symbol=analysis.token.symbol,
                    market_cap=analysis.metrics.market_cap,
                    liquidity=analysis.metrics.liquidity,
                    safety_score=analysis.safety.score,
                    opportunity_score=analysis.opportunities.score,
                    reasons=decision.reasons,
                )
                return

            # A stop, or a stop and restart, during analysis cancels this launch
            if self._state is not BotState.ACTIVE or self._run != run:
                logger.info(
                    "Trading no longer active, skipping trade",
                    token_address=token_address,
                    state=self._state.value,
                )
                return

            position = await self.executor.execute_trade(analysis)
            if position is not None:
                self._stats["traded"] += 1

        except Exception as e:
            self._stats["errors"] += 1
            logger.error(
                "Error processing new token",
                token_address=token_address,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _run_periodic(
        self, name: str, interval: float, tick: Callable[[], Awaitable[Any]]
    ) -> None:
        while True:
            await self._sleep_fn(interval)
            try:
                await tick()
            except Exception as e:
                logger.error("Periodic task failed", task=name, error=str(e))

    async def _position_tick(self) -> None:
        if self._state is BotState.ACTIVE:
            await self.positions.check_automated_sells()

    async def _notify(self, message: str) -> None:
        if self.alerts is None:
            return
        try:
            await self.alerts.push(message)
        except Exception as e:
            logger.error("Failed to push alert", error=str(e))

    def get_status(self) -> dict[str, Any]:
        """Get bot status."""
        return {
            "status": self._state.value,
            "events": dict(self._stats),
            "in_flight_events": len(self._event_tasks),
            "monitoring": self.health.snapshot("monitor", self.monitor.get_health_status),
            "buyer": self.health.snapshot("buyer", self.buyer.get_status),
            "seller": self.health.snapshot("seller", self.seller.get_status),
            "positions": self.positions.get_status(),
            "settings": {
                "simulation_mode": self.settings.simulation_mode,
                "buy_amount_sol": self.settings.buy_amount_sol,
                "max_slippage": self.settings.max_slippage,
                "take_profit_percentage": self.settings.take_profit_percentage,
                "stop_loss_percentage": self.settings.stop_loss_percentage,
                "trailing_stop_percentage": self.settings.trailing_stop_percentage,
            },
        }
