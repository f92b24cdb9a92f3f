"""Price source backed by the token validator."""

import structlog

from ..core.interfaces import PriceSource, TokenValidator

logger = structlog.get_logger(__name__)


class ValidatorPriceSource(PriceSource):
    """Reads the current price from a fresh token analysis."""

    def __init__(self, validator: TokenValidator) -> None:
        self.validator = validator

    async def get_price(
        self, token_address: str, bonding_curve_address: str
    ) -> float | None:
        outcome = await self.validator.analyze_token(
            token_address, bonding_curve_address
        )
        if not outcome.ok:
            logger.debug(
                "Price lookup failed",
                token_address=token_address,
                error=outcome.error,
            )
            return None

        price = outcome.analysis.metrics.price
        return price if price > 0 else None
