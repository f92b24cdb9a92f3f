"""Tests for core data types."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from sniper.core.types import (
    AnalysisOutcome,
    BondingCurveInfo,
    BuyResult,
    ExitReason,
    HealthReport,
    BotState,
    NewTokenEvent,
    OpportunityInfo,
    Position,
    PositionStatus,
    SafetyInfo,
    TokenAnalysis,
    TokenInfo,
    TokenMetrics,
)

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


def make_position(entry_price: float = 1.0, amount: float = 100.0) -> Position:
    return Position.open(
        token_address="TokenA111",
        token_symbol="AAA",
        bonding_curve_address="CurveA111",
        amount=amount,
        entry_price=entry_price,
        take_profit_percentage=100.0,
        stop_loss_percentage=30.0,
        now=T0,
    )


def test_new_token_event_json_roundtrip() -> None:
    """Test NewTokenEvent serializes with its timestamp."""
    event = NewTokenEvent(
        token_address="TokenA111",
        bonding_curve_address="CurveA111",
        creator="Creator111",
        timestamp=T0,
    )

    data = json.loads(event.model_dump_json())
    assert data["token_address"] == "TokenA111"
    assert NewTokenEvent.model_validate(data) == event


def test_new_token_event_naive_timestamp_is_utc() -> None:
    """Test that a naive detection time is read as UTC."""
    event = NewTokenEvent(
        token_address="TokenA111",
        bonding_curve_address="CurveA111",
        creator="Creator111",
        timestamp=datetime(2024, 1, 1, 12, 0, 0),
    )

    assert event.timestamp == T0
    assert event.timestamp.tzinfo is UTC


def test_score_bounds() -> None:
    """Test that scores are restricted to 0-100."""
    assert SafetyInfo(score=0).score == 0
    assert OpportunityInfo(score=100).score == 100

    with pytest.raises(ValidationError):
        SafetyInfo(score=101)

    with pytest.raises(ValidationError):
        OpportunityInfo(score=-1)


def test_analysis_outcome_variants() -> None:
    """Test success and failure outcomes."""
    analysis = TokenAnalysis(
        token=TokenInfo(address="TokenA111", symbol="AAA", creator="Creator111"),
        bonding_curve=BondingCurveInfo(address="CurveA111"),
        metrics=TokenMetrics(market_cap=10000, liquidity=10, price=0.001),
        safety=SafetyInfo(score=80),
        opportunities=OpportunityInfo(score=70),
    )

    success = AnalysisOutcome.success(analysis)
    assert success.ok is True
    assert success.analysis.token.symbol == "AAA"
    assert success.error is None

    failure = AnalysisOutcome.failure("curve account not found")
    assert failure.ok is False
    assert failure.analysis is None
    assert failure.error == "curve account not found"


def test_buy_result_requires_fill_on_success() -> None:
    """Test that a successful buy must carry a positive amount and price."""
    result = BuyResult(success=True, amount=1000.0, price=0.0001, total_value=0.1)
    assert result.success is True

    with pytest.raises(ValidationError):
        BuyResult(success=True, amount=0.0, price=0.0001)

    failed = BuyResult.failed("insufficient funds")
    assert failed.success is False
    assert failed.error == "insufficient funds"


def test_position_open_sets_exit_prices() -> None:
    """Test take-profit and stop-loss prices derived at open."""
    position = make_position(entry_price=1.0)

    assert position.status is PositionStatus.OPEN
    assert position.take_profit_price == 2.0
    assert position.stop_loss_price == 0.7
    assert position.current_price == 1.0
    assert position.peak_price == 1.0
    assert position.pnl == 0.0
    assert position.closing is False


def test_position_update_price() -> None:
    """Test P&L and peak tracking on price updates."""
    position = make_position(entry_price=1.0, amount=100.0)
    later = T0 + timedelta(seconds=10)

    position.update_price(1.5, later)
    assert position.pnl == pytest.approx(50.0)
    assert position.pnl_percentage == pytest.approx(50.0)
    assert position.peak_price == 1.5
    assert position.last_updated == later

    position.update_price(1.2, later)
    assert position.peak_price == 1.5
    assert position.pnl_percentage == pytest.approx(20.0)


def test_position_close() -> None:
    """Test closing records realized P&L and is not repeatable."""
    position = make_position(entry_price=1.0, amount=100.0)
    position.closing = True

    position.close(2.0, ExitReason.TAKE_PROFIT, T0 + timedelta(minutes=1))

    assert position.status is PositionStatus.CLOSED
    assert position.closing is False
    assert position.exit_reason is ExitReason.TAKE_PROFIT
    assert position.realized_pnl == pytest.approx(100.0)

    with pytest.raises(ValueError, match="already closed"):
        position.close(2.0, ExitReason.TAKE_PROFIT, T0)

    with pytest.raises(ValueError, match="closed"):
        position.update_price(3.0, T0)


def test_health_report_serializes_state() -> None:
    """Test HealthReport JSON dump uses enum values."""
    report = HealthReport(
        timestamp=T0,
        status=BotState.PAUSED,
        rpc_healthy=True,
        simulation_mode=True,
    )

    data = report.model_dump(mode="json")
    assert data["status"] == "PAUSED"
    assert data["open_positions"] == 0
