"""Process entry point: assemble the sniper from settings and run it."""

import argparse
import asyncio
import pkgutil
import signal
import sys
from typing import Any

import structlog

from ..alerts.telegram import NoopAlertSink, TelegramAlertSink
from ..config.logging import configure_logging
from ..config.settings import AppSettings, load_settings
from ..core.errors import ConfigurationError
from ..data.solana_rpc import SolanaRpcClient
from ..exec.paper import PaperBuyer, PaperFills, PaperSeller
from ..filters.blacklist import BlacklistSafetyChecker
from .controller import BotController

logger = structlog.get_logger(__name__)


def _load_factory(path: str | None, component: str, settings: AppSettings) -> Any:
    """Build a collaborator from a "package.module:callable" factory path.

    Args:
        path: Import path of the factory, called with the settings
        component: Component name used in errors and logs
        settings: Application settings

    Returns:
        The constructed collaborator

    Raises:
        ConfigurationError: If no factory is configured or it cannot be loaded
    """
    if not path:
        raise ConfigurationError(f"{component}_factory is required")

    try:
        factory = pkgutil.resolve_name(path)
    except (ImportError, AttributeError, ValueError) as e:
        raise ConfigurationError(
            f"Cannot load {component} factory {path!r}: {e}"
        ) from e

    logger.info("Loaded collaborator factory", component=component, factory=path)
    return factory(settings)


def assemble(settings: AppSettings) -> dict[str, Any]:
    """Assemble all collaborators from settings.

    Args:
        settings: Application settings

    Returns:
        Dictionary of assembled components

    Raises:
        ConfigurationError: If a required collaborator cannot be built
    """
    components: dict[str, Any] = {}

    components["rpc"] = SolanaRpcClient(
        rpc_url=settings.rpc_url, wallet_address=settings.wallet_address
    )
    components["monitor"] = _load_factory(settings.monitor_factory, "monitor", settings)
    components["validator"] = _load_factory(
        settings.validator_factory, "validator", settings
    )

    if settings.simulation_mode:
        fills = PaperFills(
            slippage_bps=settings.paper_slippage_bps, fee_bps=settings.paper_fee_bps
        )
        components["buyer"] = PaperBuyer(buy_amount_sol=settings.buy_amount_sol, fills=fills)
        components["seller"] = PaperSeller(fills=fills)
        logger.info("Using paper buyer and seller (simulation mode)")
    else:
        components["buyer"] = _load_factory(settings.buyer_factory, "buyer", settings)
        components["seller"] = _load_factory(settings.seller_factory, "seller", settings)
        logger.critical(
            "🚨 LIVE TRADING MODE ENABLED 🚨",
            rpc_url=settings.rpc_url,
            buy_amount_sol=settings.buy_amount_sol,
            max_slippage=settings.max_slippage,
        )

    components["safety"] = BlacklistSafetyChecker(
        blacklisted_tokens=settings.blacklisted_tokens,
        blacklisted_creators=settings.blacklisted_creators,
    )

    if settings.telegram_bot_token and settings.telegram_admin_ids:
        components["alerts"] = TelegramAlertSink(
            bot_token=settings.telegram_bot_token,
            admin_user_ids=settings.telegram_admin_ids,
        )
        logger.info("Using Telegram alert sink")
    else:
        components["alerts"] = NoopAlertSink()
        logger.info("Using noop alert sink (no Telegram config)")

    return components


def build_controller(
    settings: AppSettings, components: dict[str, Any]
) -> BotController:
    return BotController(
        settings=settings,
        monitor=components["monitor"],
        validator=components["validator"],
        safety_checker=components["safety"],
        buyer=components["buyer"],
        seller=components["seller"],
        rpc=components["rpc"],
        alerts=components["alerts"],
    )


async def _close_components(components: dict[str, Any]) -> None:
    for name in ("rpc", "alerts"):
        close = getattr(components.get(name), "aclose", None) or getattr(
            components.get(name), "close", None
        )
        if close is None:
            continue
        try:
            await close()
        except Exception as e:
            logger.warning("Failed to close component", component=name, error=str(e))


async def run(settings: AppSettings) -> int:
    """Run the sniper until a shutdown signal arrives.

    Args:
        settings: Application settings

    Returns:
        Process exit code: 0 after a clean stop, 1 if startup failed
    """
    try:
        components = assemble(settings)
        controller = build_controller(settings, components)
    except Exception as e:
        logger.error("Failed to assemble sniper bot", error=str(e))
        return 1

    loop = asyncio.get_running_loop()
    stop_tasks: list[asyncio.Task] = []

    def _request_stop(signame: str) -> None:
        logger.info("Received shutdown signal", signal=signame)
        stop_tasks.append(loop.create_task(controller.stop()))

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _request_stop, sig.name)

    try:
        try:
            await controller.start()
        except Exception as e:
            logger.error("Failed to start sniper bot", error=str(e))
            return 1

        await controller.wait_stopped()
        await asyncio.gather(*stop_tasks, return_exceptions=True)
        logger.info("Shutdown complete")
        return 0
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await _close_components(components)


async def main(argv: list[str] | None = None) -> int:
    """Main entry point for the sniper bot."""
    parser = argparse.ArgumentParser(description="Pump.fun Launch Sniper")
    parser.add_argument(
        "--config", default="configs/paper.yaml", help="Configuration file path"
    )
    parser.add_argument(
        "--profile",
        default="paper",
        choices=["dev", "paper", "prod"],
        help="Configuration profile",
    )

    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.profile, args.config)
    except Exception as e:
        configure_logging()
        logger.error("Fatal error", error=str(e))
        return 1

    configure_logging(settings.log_level)
    logger.info("Settings loaded", profile=args.profile, config=args.config)

    return await run(settings)


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
