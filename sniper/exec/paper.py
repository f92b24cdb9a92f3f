"""Simulation-mode buyer and seller that fill trades without moving funds."""

import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from ..core.interfaces import Buyer, Seller
from ..core.types import BuyRequest, BuyResult, SellRequest, SellResult

logger = structlog.get_logger(__name__)


class PaperFills:
    """Slippage and fee model shared by the paper buyer and seller."""

    def __init__(
        self,
        slippage_bps: int = 100,
        fee_bps: int = 100,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize paper fill model.

        Args:
            slippage_bps: Slippage in basis points (default 100 = 1%)
            fee_bps: Fee in basis points (default 100 = 1%)
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.slippage_bps = slippage_bps
        self.fee_bps = fee_bps
        self._now_fn = now_fn or time.time
        self._trade_history: list[dict[str, Any]] = []

    def execution_price(self, base_price: float, is_buy: bool) -> float:
        """Calculate execution price with slippage.

        Args:
            base_price: Quoted price in SOL
            is_buy: True for buy, False for sell

        Returns:
            Execution price with slippage
        """
        slippage_multiplier = self.slippage_bps / 10000.0

        if is_buy:
            # Buy: pay more due to slippage
            return base_price * (1 + slippage_multiplier)
        else:
            # Sell: receive less due to slippage
            return base_price * (1 - slippage_multiplier)

    def fee(self, value_sol: float) -> float:
        """Calculate trading fee in SOL."""
        return value_sol * (self.fee_bps / 10000.0)

    def record(self, trade: dict[str, Any]) -> None:
        trade["ts"] = datetime.fromtimestamp(self._now_fn())
        self._trade_history.append(trade)

    def get_trade_history(self) -> list[dict[str, Any]]:
        """Get trade history.

        Returns:
            List of trade records
        """
        return self._trade_history.copy()


class PaperBuyer(Buyer):
    """Buys the configured SOL amount at the analyzed price."""

    def __init__(self, buy_amount_sol: float, fills: PaperFills) -> None:
        """Initialize paper buyer.

        Args:
            buy_amount_sol: SOL spent per buy
            fills: Slippage and fee model
        """
        self.buy_amount_sol = buy_amount_sol
        self.fills = fills
        self._buys = 0
        self._failed = 0
        self._emergency_stops = 0

    async def execute_buy(self, request: BuyRequest) -> BuyResult:
        """Simulate a buy of the requested token."""
        token_address = request.token_address
        base_price = request.analysis.metrics.price

        if base_price <= 0:
            self._failed += 1
            logger.warning(
                "[SIMULATION] Buy rejected, no price",
                token_address=token_address,
            )
            return BuyResult.failed(f"No price available for {token_address}")

        exec_price = self.fills.execution_price(base_price, is_buy=True)
        fee_sol = self.fills.fee(self.buy_amount_sol)
        amount = (self.buy_amount_sol - fee_sol) / exec_price

        self._buys += 1
        self.fills.record(
            {
                "side": "buy",
                "token_address": token_address,
                "amount": amount,
                "price": exec_price,
                "base_price": base_price,
                "value_sol": self.buy_amount_sol,
                "fee_sol": fee_sol,
            }
        )

        logger.info(
            "[SIMULATION] Buy executed",
            token_address=token_address,
            token_symbol=request.analysis.token.symbol,
            amount=amount,
            exec_price=exec_price,
            base_price=base_price,
            value_sol=self.buy_amount_sol,
            fee_sol=fee_sol,
        )

        return BuyResult(
            success=True,
            amount=amount,
            price=exec_price,
            total_value=self.buy_amount_sol,
        )

    async def emergency_stop(self) -> None:
        # Paper buys complete synchronously, so nothing is ever in flight
        self._emergency_stops += 1
        logger.info("[SIMULATION] Buyer emergency stop")

    def get_status(self) -> dict[str, Any]:
        return {
            "mode": "simulation",
            "buys": self._buys,
            "failed_buys": self._failed,
            "buy_amount_sol": self.buy_amount_sol,
            "emergency_stops": self._emergency_stops,
        }


class PaperSeller(Seller):
    """Sells a position at its expected price."""

    def __init__(self, fills: PaperFills) -> None:
        self.fills = fills
        self._sells = 0
        self._failed = 0
        self._proceeds_sol = 0.0
        self._emergency_stops = 0

    async def execute_sell(self, request: SellRequest) -> SellResult:
        """Simulate selling the whole position."""
        token_address = request.token_address

        if request.amount <= 0 or request.expected_price <= 0:
            self._failed += 1
            logger.warning(
                "[SIMULATION] Sell rejected",
                token_address=token_address,
                amount=request.amount,
                expected_price=request.expected_price,
            )
            return SellResult.failed(f"Nothing to sell for {token_address}")

        exec_price = self.fills.execution_price(request.expected_price, is_buy=False)
        gross_sol = request.amount * exec_price
        fee_sol = self.fills.fee(gross_sol)
        total_value = gross_sol - fee_sol

        self._sells += 1
        self._proceeds_sol += total_value
        self.fills.record(
            {
                "side": "sell",
                "token_address": token_address,
                "amount": request.amount,
                "price": exec_price,
                "base_price": request.expected_price,
                "value_sol": total_value,
                "fee_sol": fee_sol,
                "reason": request.reason.value,
            }
        )

        logger.info(
            "[SIMULATION] Sell executed",
            token_address=token_address,
            amount=request.amount,
            exec_price=exec_price,
            value_sol=total_value,
            fee_sol=fee_sol,
            reason=request.reason.value,
        )

        return SellResult(
            success=True,
            amount=request.amount,
            price=exec_price,
            total_value=total_value,
        )

    async def emergency_stop(self) -> None:
        self._emergency_stops += 1
        logger.info("[SIMULATION] Seller emergency stop")

    def get_status(self) -> dict[str, Any]:
        return {
            "mode": "simulation",
            "sells": self._sells,
            "failed_sells": self._failed,
            "proceeds_sol": self._proceeds_sol,
            "emergency_stops": self._emergency_stops,
        }
