"""Open position tracking and automated exits."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from ..core.interfaces import AlertSink, PriceSource, Seller
from ..core.types import ExitReason, Position, SellRequest, SellResult

logger = structlog.get_logger(__name__)


class PositionManager:
    """Owns open positions and sells them on stop-loss, take-profit or trailing stop.

    Positions are keyed by token address. Every mutation of a position happens
    under that position's lock, so a tick's exit check, a late registration
    and a completing sell never interleave on the same token while different
    tokens progress independently.
    """

    def __init__(
        self,
        seller: Seller,
        price_source: PriceSource,
        trailing_stop_percentage: float = 0.0,
        alerts: AlertSink | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize position manager.

        Args:
            seller: Sell collaborator that closes positions
            price_source: Source of current prices
            trailing_stop_percentage: Retracement from peak that triggers a
                sell, in percent (0 disables the trailing stop)
            alerts: Optional alert sink notified when positions close
            now_fn: Optional function returning the current time (for testing)
        """
        self.seller = seller
        self.price_source = price_source
        self.trailing_stop_percentage = trailing_stop_percentage
        self.alerts = alerts
        self._now_fn = now_fn or (lambda: datetime.now(UTC))

        self._positions: dict[str, Position] = {}
        self._closed: list[Position] = []
        self._locks: dict[str, asyncio.Lock] = {}
        self._sell_tasks: dict[str, asyncio.Task] = {}
        self._ticks = 0

    def _lock_for(self, token_address: str) -> asyncio.Lock:
        return self._locks.setdefault(token_address, asyncio.Lock())

    async def add_position(self, position: Position) -> bool:
        """Start tracking a newly opened position.

        Returns:
            False if an open position for the token is already tracked
        """
        token_address = position.token_address

        async with self._lock_for(token_address):
            if token_address in self._positions:
                logger.warning(
                    "Position already tracked, ignoring duplicate",
                    token_address=token_address,
                    token_symbol=position.token_symbol,
                )
                return False

            self._positions[token_address] = position

        logger.info(
            "Tracking new position",
            token_address=token_address,
            token_symbol=position.token_symbol,
            amount=position.amount,
            entry_price=position.entry_price,
            take_profit_price=position.take_profit_price,
            stop_loss_price=position.stop_loss_price,
            open_positions=len(self._positions),
        )
        return True

    def has_open_position(self, token_address: str) -> bool:
        return token_address in self._positions

    async def check_automated_sells(self) -> None:
        """Run one evaluation tick over every open position."""
        self._ticks += 1
        addresses = list(self._positions)
        if not addresses:
            return

        logger.debug("Checking automated sells", open_positions=len(addresses))
        await asyncio.gather(*(self._check_position(a) for a in addresses))

    async def _check_position(self, token_address: str) -> None:
        async with self._lock_for(token_address):
            position = self._positions.get(token_address)
            if position is None or position.closing:
                return

            try:
                price = await self.price_source.get_price(
                    token_address, position.bonding_curve_address
                )
            except Exception as e:
                logger.warning(
                    "Failed to refresh position price",
                    token_address=token_address,
                    token_symbol=position.token_symbol,
                    error=str(e),
                )
                return

            if price is None or price <= 0:
                logger.debug("No price available", token_address=token_address)
                return

            position.update_price(price, self._now_fn())

            reason = evaluate_exit(position, self.trailing_stop_percentage)
            if reason is None:
                return

            position.closing = True

        logger.info(
            "Exit triggered",
            token_address=token_address,
            token_symbol=position.token_symbol,
            reason=reason.value,
            current_price=position.current_price,
            entry_price=position.entry_price,
            peak_price=position.peak_price,
            pnl_percentage=position.pnl_percentage,
        )

        task = asyncio.create_task(
            self._execute_sell(position, reason), name=f"sell-{token_address}"
        )
        self._sell_tasks[token_address] = task
        task.add_done_callback(lambda _t, a=token_address: self._sell_tasks.pop(a, None))

    async def _execute_sell(self, position: Position, reason: ExitReason) -> None:
        token_address = position.token_address
        request = SellRequest(
            token_address=token_address,
            bonding_curve_address=position.bonding_curve_address,
            amount=position.amount,
            reason=reason,
            expected_price=position.current_price,
        )

        try:
            result = await self.seller.execute_sell(request)
        except Exception as e:
            result = SellResult.failed(str(e))

        async with self._lock_for(token_address):
            if not result.success:
                position.closing = False
                logger.warning(
                    "Sell failed, position remains open",
                    token_address=token_address,
                    token_symbol=position.token_symbol,
                    reason=reason.value,
                    error=result.error,
                )
                return

            exit_price = result.price if result.price > 0 else position.current_price
            position.close(exit_price, reason, self._now_fn())
            self._positions.pop(token_address, None)
            self._closed.append(position)
        self._locks.pop(token_address, None)

        logger.info(
            "Position closed",
            token_address=token_address,
            token_symbol=position.token_symbol,
            reason=reason.value,
            entry_price=position.entry_price,
            exit_price=exit_price,
            realized_pnl=position.realized_pnl,
        )

        await self._notify(
            f"🔴 <b>Position Closed</b>\n\n"
            f"Token: {position.token_symbol} "
            f"(<code>{token_address[:8]}...</code>)\n"
            f"Reason: {reason.value}\n"
            f"Entry: {position.entry_price:.9f} SOL\n"
            f"Exit: {exit_price:.9f} SOL\n"
            f"P&L: {position.realized_pnl:.6f} SOL"
        )

    async def _notify(self, message: str) -> None:
        if self.alerts is None:
            return
        try:
            await self.alerts.push(message)
        except Exception as e:
            logger.error("Failed to push alert", error=str(e))

    async def wait_for_pending_sells(self) -> None:
        """Wait until every in-flight sell has completed."""
        tasks = list(self._sell_tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def cancel_pending_sells(self) -> int:
        """Cancel in-flight sells and return their positions to OPEN.

        Returns:
            Number of cancelled sells
        """
        tasks = list(self._sell_tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        for position in self._positions.values():
            position.closing = False

        if tasks:
            logger.warning("Cancelled pending sells", count=len(tasks))
        return len(tasks)

    def get_position(self, token_address: str) -> Position | None:
        """Get an open position."""
        return self._positions.get(token_address)

    def get_open_positions(self) -> dict[str, Position]:
        """Get all open positions."""
        return self._positions.copy()

    def get_closed_positions(self) -> list[Position]:
        """Get closed positions, oldest first."""
        return self._closed.copy()

    def get_status(self) -> dict[str, Any]:
        return {
            "open_positions": len(self._positions),
            "closing_positions": sum(p.closing for p in self._positions.values()),
            "closed_positions": len(self._closed),
            "pending_sells": len(self._sell_tasks),
            "ticks": self._ticks,
            "unrealized_pnl": sum(p.pnl for p in self._positions.values()),
            "realized_pnl": sum(p.realized_pnl or 0.0 for p in self._closed),
        }


# Pure helper functions for exit calculations


def calculate_trailing_stop_price(peak_price: float, stop_percentage: float) -> float:
    """Calculate trailing stop price.

    Args:
        peak_price: Highest price observed since entry
        stop_percentage: Allowed retracement in percent (e.g. 10 for 10%)

    Returns:
        Trailing stop price
    """
    return peak_price * (1 - stop_percentage / 100)


def evaluate_exit(
    position: Position, trailing_stop_percentage: float = 0.0
) -> ExitReason | None:
    """Return the first exit rule a position triggers, or None.

    Stop-loss is checked before take-profit, which is checked before the
    trailing stop. The trailing stop only arms once the price has traded
    above the entry price.
    """
    price = position.current_price

    if price <= position.stop_loss_price:
        return ExitReason.STOP_LOSS

    if price >= position.take_profit_price:
        return ExitReason.TAKE_PROFIT

    if trailing_stop_percentage > 0 and position.peak_price > position.entry_price:
        stop_price = calculate_trailing_stop_price(
            position.peak_price, trailing_stop_percentage
        )
        if price <= stop_price:
            return ExitReason.TRAILING_STOP

    return None
