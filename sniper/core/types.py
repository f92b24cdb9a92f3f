"""Core data types for the sniper bot."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class BotState(str, Enum):
    """Lifecycle state of the bot controller."""

    STOPPED = "STOPPED"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class PositionStatus(str, Enum):
    """Status of a tracked position."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ExitReason(str, Enum):
    """Reason an automated sell was triggered."""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    TRAILING_STOP = "trailing_stop"


class NewTokenEvent(BaseModel):
    """Launch notification emitted by the monitor."""

    token_address: str = Field(description="Token mint address")
    bonding_curve_address: str = Field(description="Bonding curve account address")
    creator: str = Field(description="Creator wallet address")
    timestamp: datetime = Field(description="Time the launch was detected")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Monitors built on datetime.fromtimestamp() hand over naive values
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class TokenInfo(BaseModel):
    """Token identity."""

    address: str = Field(description="Token mint address")
    symbol: str = Field(description="Token symbol")
    creator: str = Field(description="Creator wallet address")
    name: str | None = Field(default=None, description="Token name")


class BondingCurveInfo(BaseModel):
    """Bonding curve identity."""

    address: str = Field(description="Bonding curve account address")


class TokenMetrics(BaseModel):
    """Market metrics of a freshly launched token."""

    market_cap: float = Field(description="Market cap in SOL")
    liquidity: float = Field(description="Liquidity in SOL")
    price: float = Field(default=0.0, description="Price per token in SOL")


class SafetyInfo(BaseModel):
    """Rug-pull risk summary."""

    score: int = Field(ge=0, le=100, description="Safety score (0-100)")


class OpportunityInfo(BaseModel):
    """Upside potential summary."""

    score: int = Field(ge=0, le=100, description="Opportunity score (0-100)")
    reasons: list[str] = Field(default_factory=list, description="Score reasons")


class TokenAnalysis(BaseModel):
    """Analysis of a launched token, produced by the validator."""

    token: TokenInfo
    bonding_curve: BondingCurveInfo
    metrics: TokenMetrics
    safety: SafetyInfo
    opportunities: OpportunityInfo


class AnalysisOutcome(BaseModel):
    """Result of asking the validator to analyze a token."""

    analysis: TokenAnalysis | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether an analysis is available."""
        return self.analysis is not None

    @classmethod
    def success(cls, analysis: TokenAnalysis) -> "AnalysisOutcome":
        return cls(analysis=analysis)

    @classmethod
    def failure(cls, error: str) -> "AnalysisOutcome":
        return cls(error=error)


class SafetyResult(BaseModel):
    """Independent safety check result."""

    passed: bool = Field(description="Whether the token passed the check")
    reasons: list[str] = Field(default_factory=list, description="Check reasons")


class GateDecision(BaseModel):
    """Trade/no-trade decision for an analyzed token."""

    accepted: bool = Field(description="Whether the token should be traded")
    reasons: list[str] = Field(default_factory=list, description="Reasons for decision")


class BuyRequest(BaseModel):
    """Request handed to the buy collaborator."""

    token_address: str
    bonding_curve_address: str
    analysis: TokenAnalysis


class BuyResult(BaseModel):
    """Result returned by the buy collaborator."""

    success: bool
    amount: float = 0.0
    price: float = 0.0
    total_value: float = 0.0
    error: str | None = None

    @model_validator(mode="after")
    def _check_fill(self) -> "BuyResult":
        if self.success and (self.amount <= 0 or self.price <= 0):
            raise ValueError("successful buy requires positive amount and price")
        return self

    @classmethod
    def failed(cls, error: str) -> "BuyResult":
        return cls(success=False, error=error)


class SellRequest(BaseModel):
    """Request handed to the sell collaborator."""

    token_address: str
    bonding_curve_address: str
    amount: float
    reason: ExitReason
    expected_price: float


class SellResult(BaseModel):
    """Result returned by the sell collaborator."""

    success: bool
    amount: float = 0.0
    price: float = 0.0
    total_value: float = 0.0
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "SellResult":
        return cls(success=False, error=error)


class Position(BaseModel):
    """A position opened by the bot and tracked until it is sold."""

    token_address: str
    token_symbol: str
    bonding_curve_address: str
    amount: float
    entry_price: float
    current_price: float
    peak_price: float
    pnl: float = 0.0
    pnl_percentage: float = 0.0
    opened_at: datetime
    last_updated: datetime
    take_profit_price: float
    stop_loss_price: float
    status: PositionStatus = PositionStatus.OPEN
    closing: bool = Field(default=False, description="A sell request is pending")
    exit_reason: ExitReason | None = None
    exit_price: float | None = None
    realized_pnl: float | None = None
    closed_at: datetime | None = None

    @classmethod
    def open(
        cls,
        token_address: str,
        token_symbol: str,
        bonding_curve_address: str,
        amount: float,
        entry_price: float,
        take_profit_percentage: float,
        stop_loss_percentage: float,
        now: datetime,
    ) -> "Position":
        """Create an open position with fixed take-profit and stop-loss prices."""
        return cls(
            token_address=token_address,
            token_symbol=token_symbol,
            bonding_curve_address=bonding_curve_address,
            amount=amount,
            entry_price=entry_price,
            current_price=entry_price,
            peak_price=entry_price,
            opened_at=now,
            last_updated=now,
            take_profit_price=entry_price * (1 + take_profit_percentage / 100),
            stop_loss_price=entry_price * (1 - stop_loss_percentage / 100),
        )

    @property
    def is_open(self) -> bool:
        return self.status is PositionStatus.OPEN

    def update_price(self, price: float, now: datetime) -> None:
        """Record a fresh market price and recompute unrealized P&L."""
        if not self.is_open:
            raise ValueError(f"Position {self.token_address} is closed")

        self.current_price = price
        self.peak_price = max(self.peak_price, price)
        self.pnl = (price - self.entry_price) * self.amount
        self.pnl_percentage = (
            (price - self.entry_price) / self.entry_price * 100.0
            if self.entry_price
            else 0.0
        )
        self.last_updated = now

    def close(self, exit_price: float, reason: ExitReason, now: datetime) -> None:
        """Mark the position closed with its realized P&L."""
        if not self.is_open:
            raise ValueError(f"Position {self.token_address} is already closed")

        self.status = PositionStatus.CLOSED
        self.closing = False
        self.exit_reason = reason
        self.exit_price = exit_price
        self.realized_pnl = (exit_price - self.entry_price) * self.amount
        self.closed_at = now
        self.last_updated = now


class HealthReport(BaseModel):
    """Periodic health snapshot of the bot and its collaborators."""

    timestamp: datetime
    status: BotState
    monitoring: dict[str, Any] = Field(default_factory=dict)
    buyer: dict[str, Any] = Field(default_factory=dict)
    seller: dict[str, Any] = Field(default_factory=dict)
    safety: dict[str, Any] = Field(default_factory=dict)
    rpc_healthy: bool
    open_positions: int = 0
    simulation_mode: bool
