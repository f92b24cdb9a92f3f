"""Trade/no-trade gate for analyzed token launches."""

import structlog
from pydantic import BaseModel, Field

from ..config.settings import AppSettings
from ..core.interfaces import SafetyChecker
from ..core.types import GateDecision, TokenAnalysis

logger = structlog.get_logger(__name__)


class GateThresholds(BaseModel):
    """Thresholds an analysis must meet before a buy is attempted."""

    min_safety_score: int = Field(default=60, description="Minimum safety score")
    min_opportunity_score: int = Field(
        default=50, description="Minimum opportunity score"
    )
    min_market_cap: float = Field(default=1000.0, description="Minimum market cap")
    max_market_cap: float = Field(default=50000.0, description="Maximum market cap")
    min_liquidity: float = Field(default=5.0, description="Minimum liquidity")

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "GateThresholds":
        return cls(
            min_safety_score=settings.min_safety_score,
            min_opportunity_score=settings.min_opportunity_score,
            min_market_cap=settings.min_market_cap,
            max_market_cap=settings.max_market_cap,
            min_liquidity=settings.min_liquidity,
        )


def check_thresholds(analysis: TokenAnalysis, thresholds: GateThresholds) -> list[str]:
    """Return the reasons an analysis fails the thresholds (empty if it passes)."""
    reasons = []

    if analysis.safety.score < thresholds.min_safety_score:
        reasons.append(
            f"Safety score too low: {analysis.safety.score} < "
            f"{thresholds.min_safety_score}"
        )

    if analysis.opportunities.score < thresholds.min_opportunity_score:
        reasons.append(
            f"Opportunity score too low: {analysis.opportunities.score} < "
            f"{thresholds.min_opportunity_score}"
        )

    market_cap = analysis.metrics.market_cap
    if market_cap < thresholds.min_market_cap:
        reasons.append(
            f"Market cap too low: {market_cap:.2f} < {thresholds.min_market_cap:.2f}"
        )
    elif market_cap > thresholds.max_market_cap:
        reasons.append(
            f"Market cap too high: {market_cap:.2f} > {thresholds.max_market_cap:.2f}"
        )

    if analysis.metrics.liquidity < thresholds.min_liquidity:
        reasons.append(
            f"Liquidity too low: {analysis.metrics.liquidity:.2f} < "
            f"{thresholds.min_liquidity:.2f}"
        )

    return reasons


class EventGate:
    """Decides whether an analyzed launch should be bought."""

    def __init__(
        self, thresholds: GateThresholds, safety_checker: SafetyChecker
    ) -> None:
        """Initialize the gate.

        Args:
            thresholds: Score, market cap and liquidity thresholds
            safety_checker: Independent safety/blacklist checker
        """
        self.thresholds = thresholds
        self.safety_checker = safety_checker

    async def evaluate(self, analysis: TokenAnalysis) -> GateDecision:
        """Evaluate an analysis against thresholds and the safety checker."""
        token_address = analysis.token.address
        reasons = check_thresholds(analysis, self.thresholds)

        # The external check only runs for tokens that cleared every threshold
        if not reasons:
            try:
                safety = await self.safety_checker.perform_safety_check(
                    token_address, analysis.token.creator
                )
            except Exception as e:
                logger.error(
                    "Safety check failed",
                    token_address=token_address,
                    error=str(e),
                )
                reasons.append(f"Safety check error: {e}")
            else:
                if not safety.passed:
                    reasons.append("Safety check failed")
                    reasons.extend(safety.reasons)

        accepted = not reasons
        if accepted:
            reasons.append("Passed launch gate")

        logger.debug(
            "Launch gate evaluation",
            token_address=token_address,
            accepted=accepted,
            reasons=reasons,
        )

        return GateDecision(accepted=accepted, reasons=reasons)

    async def should_trade(self, analysis: TokenAnalysis) -> bool:
        """Whether the analyzed token should be bought."""
        decision = await self.evaluate(analysis)
        return decision.accepted
