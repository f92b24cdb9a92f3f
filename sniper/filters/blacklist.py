"""Blacklist-based safety checker."""

from collections.abc import Iterable
from typing import Any

import structlog

from ..core.interfaces import SafetyChecker
from ..core.types import SafetyResult

logger = structlog.get_logger(__name__)


class BlacklistSafetyChecker(SafetyChecker):
    """Rejects blacklisted tokens and tokens launched by blacklisted creators."""

    def __init__(
        self,
        blacklisted_tokens: Iterable[str] = (),
        blacklisted_creators: Iterable[str] = (),
    ) -> None:
        """Initialize the checker.

        Args:
            blacklisted_tokens: Token addresses never to trade
            blacklisted_creators: Creator addresses never to trade
        """
        self._tokens: set[str] = set(blacklisted_tokens)
        self._creators: set[str] = set(blacklisted_creators)
        self._checks = 0
        self._passed = 0

    def add_token(self, address: str) -> None:
        self._tokens.add(address)
        logger.info("Token blacklisted", token_address=address)

    def add_creator(self, creator: str) -> None:
        self._creators.add(creator)
        logger.info("Creator blacklisted", creator=creator)

    def is_blacklisted(self, address: str, creator: str) -> bool:
        return address in self._tokens or creator in self._creators

    async def perform_safety_check(self, address: str, creator: str) -> SafetyResult:
        """Check a token and its creator against the blacklists."""
        reasons = []

        if address in self._tokens:
            reasons.append(f"Token is blacklisted: {address}")

        if creator in self._creators:
            reasons.append(f"Creator is blacklisted: {creator}")

        passed = not reasons
        self._checks += 1
        if passed:
            self._passed += 1
            reasons.append("Passed blacklist check")

        logger.debug(
            "Blacklist check",
            token_address=address,
            creator=creator,
            passed=passed,
            reasons=reasons,
        )

        return SafetyResult(passed=passed, reasons=reasons)

    def get_safety_stats(self) -> dict[str, Any]:
        return {
            "checks": self._checks,
            "passed": self._passed,
            "rejected": self._checks - self._passed,
            "blacklisted_tokens": len(self._tokens),
            "blacklisted_creators": len(self._creators),
        }
