"""Turns accepted analyses into open positions."""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from ..core.interfaces import AlertSink, Buyer
from ..core.types import BuyRequest, Position, TokenAnalysis
from .positions import PositionManager

logger = structlog.get_logger(__name__)


class TradeExecutor:
    """Buys accepted tokens and registers the resulting positions."""

    def __init__(
        self,
        buyer: Buyer,
        positions: PositionManager,
        take_profit_percentage: float,
        stop_loss_percentage: float,
        alerts: AlertSink | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize trade executor.

        Args:
            buyer: Buy collaborator
            positions: Position manager that tracks opened positions
            take_profit_percentage: Take profit above entry in percent
            stop_loss_percentage: Stop loss below entry in percent
            alerts: Optional alert sink notified when positions open
            now_fn: Optional function returning the current time (for testing)
        """
        self.buyer = buyer
        self.positions = positions
        self.take_profit_percentage = take_profit_percentage
        self.stop_loss_percentage = stop_loss_percentage
        self.alerts = alerts
        self._now_fn = now_fn or (lambda: datetime.now(UTC))

        self._in_flight: set[str] = set()

    async def execute_trade(self, analysis: TokenAnalysis) -> Position | None:
        """Buy a token and track the position.

        Returns:
            The opened position, or None if nothing was bought

        Raises:
            Exception: Whatever the buy collaborator raises; nothing is retried
        """
        token_address = analysis.token.address
        symbol = analysis.token.symbol

        if token_address in self._in_flight or self.positions.has_open_position(
            token_address
        ):
            logger.info(
                "Trade already in progress or position open, skipping",
                token_address=token_address,
                token_symbol=symbol,
            )
            return None

        self._in_flight.add(token_address)
        try:
            return await self._buy(analysis)
        finally:
            self._in_flight.discard(token_address)

    async def _buy(self, analysis: TokenAnalysis) -> Position | None:
        token_address = analysis.token.address
        symbol = analysis.token.symbol

        logger.info(
            "Executing trade",
            token_address=token_address,
            token_symbol=symbol,
            market_cap=analysis.metrics.market_cap,
            safety_score=analysis.safety.score,
            opportunity_score=analysis.opportunities.score,
        )

        result = await self.buyer.execute_buy(
            BuyRequest(
                token_address=token_address,
                bonding_curve_address=analysis.bonding_curve.address,
                analysis=analysis,
            )
        )

        if not result.success:
            logger.warning(
                "Buy failed",
                token_address=token_address,
                token_symbol=symbol,
                error=result.error,
            )
            return None

        position = Position.open(
            token_address=token_address,
            token_symbol=symbol,
            bonding_curve_address=analysis.bonding_curve.address,
            amount=result.amount,
            entry_price=result.price,
            take_profit_percentage=self.take_profit_percentage,
            stop_loss_percentage=self.stop_loss_percentage,
            now=self._now_fn(),
        )

        if not await self.positions.add_position(position):
            return None

        logger.info(
            "Trade completed successfully",
            token_address=token_address,
            token_symbol=symbol,
            amount=result.amount,
            price=result.price,
            total_value=result.total_value,
        )

        if self.alerts is not None:
            try:
                await self.alerts.push(
                    f"🟢 <b>Position Opened</b>\n\n"
                    f"Token: {symbol} (<code>{token_address[:8]}...</code>)\n"
                    f"Amount: {result.amount:.6f}\n"
                    f"Price: {result.price:.9f} SOL\n"
                    f"Value: {result.total_value:.4f} SOL\n"
                    f"Take profit: {position.take_profit_price:.9f} SOL\n"
                    f"Stop loss: {position.stop_loss_price:.9f} SOL"
                )
            except Exception as e:
                logger.error(
                    "Failed to push alert", token_address=token_address, error=str(e)
                )

        return position
