"""Collaborator interfaces consumed by the sniper core."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from .types import (
    AnalysisOutcome,
    BuyRequest,
    BuyResult,
    NewTokenEvent,
    SafetyResult,
    SellRequest,
    SellResult,
)

LaunchHandler = Callable[[NewTokenEvent], None]


@runtime_checkable
class LaunchMonitor(Protocol):
    """Source of token launch events."""

    async def start_monitoring(self) -> None:
        """Begin emitting launch events."""
        ...

    async def stop_monitoring(self) -> None:
        """Stop emitting launch events."""
        ...

    def on_new_token(self, handler: LaunchHandler) -> None:
        """Register a handler invoked once per detected launch."""
        ...

    def get_health_status(self) -> dict[str, Any]:
        """Snapshot of the monitor's health."""
        ...


@runtime_checkable
class TokenValidator(Protocol):
    """Token analysis and scoring engine."""

    async def analyze_token(
        self, token_address: str, bonding_curve_address: str
    ) -> AnalysisOutcome:
        """Analyze a launched token."""
        ...


@runtime_checkable
class SafetyChecker(Protocol):
    """Independent safety and blacklist checker."""

    async def perform_safety_check(self, address: str, creator: str) -> SafetyResult:
        """Check a token and its creator."""
        ...

    def get_safety_stats(self) -> dict[str, Any]:
        """Snapshot of checker statistics."""
        ...


@runtime_checkable
class Buyer(Protocol):
    """Buy transaction builder and submitter."""

    async def execute_buy(self, request: BuyRequest) -> BuyResult:
        """Buy a token."""
        ...

    async def emergency_stop(self) -> None:
        """Cancel in-flight buys. Safe to call when idle."""
        ...

    def get_status(self) -> dict[str, Any]:
        """Snapshot of buyer status."""
        ...


@runtime_checkable
class Seller(Protocol):
    """Sell transaction builder and submitter."""

    async def execute_sell(self, request: SellRequest) -> SellResult:
        """Sell a position."""
        ...

    async def emergency_stop(self) -> None:
        """Cancel in-flight sells. Safe to call when idle."""
        ...

    def get_status(self) -> dict[str, Any]:
        """Snapshot of seller status."""
        ...


@runtime_checkable
class RpcClient(Protocol):
    """Blockchain RPC client."""

    async def get_balance(self) -> float:
        """Wallet balance in SOL."""
        ...

    async def health_check(self) -> bool:
        """Whether the RPC node is reachable and healthy."""
        ...


class PriceSource(Protocol):
    """Current price lookup for open positions."""

    async def get_price(
        self, token_address: str, bonding_curve_address: str
    ) -> float | None:
        """Current price in SOL, or None if unavailable."""
        ...


class AlertSink(Protocol):
    """Alert sink protocol."""

    async def push(self, message: str) -> None:
        """Push alert message."""
        ...
