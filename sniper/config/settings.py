"""Application settings and configuration management."""

from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import Field, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment and mode
    env: Literal["dev", "paper", "prod"] = Field(
        description="Environment: dev, paper, prod"
    )
    simulation_mode: bool = Field(
        default=True, description="Evaluate and log trades without moving funds"
    )
    log_level: str = Field(default="info", description="Log level")

    # Solana connection
    rpc_url: str = Field(description="Solana RPC URL")
    ws_url: str | None = Field(default=None, description="Solana WebSocket URL")

    # Wallet
    private_key: SecretStr | None = Field(
        default=None, description="Base58 wallet secret key"
    )
    wallet_address: str | None = Field(
        default=None, description="Wallet public key used for balance queries"
    )

    # Trading
    buy_amount_sol: float = Field(default=0.1, gt=0, description="SOL spent per buy")
    max_slippage: float = Field(
        default=25.0, ge=0, le=100, description="Slippage tolerance in percent"
    )
    take_profit_percentage: float = Field(
        default=100.0, gt=0, description="Take profit above entry in percent"
    )
    stop_loss_percentage: float = Field(
        default=30.0, gt=0, lt=100, description="Stop loss below entry in percent"
    )
    trailing_stop_percentage: float = Field(
        default=10.0,
        ge=0,
        lt=100,
        description="Retracement from peak that triggers a sell (0 disables)",
    )

    # Token filtering
    min_market_cap: float = Field(default=1000.0, ge=0, description="Min market cap")
    max_market_cap: float = Field(default=50000.0, ge=0, description="Max market cap")
    min_liquidity: float = Field(default=5.0, ge=0, description="Min liquidity in SOL")
    min_safety_score: int = Field(
        default=60, ge=0, le=100, description="Minimum safety score"
    )
    min_opportunity_score: int = Field(
        default=50, ge=0, le=100, description="Minimum opportunity score"
    )
    blacklisted_tokens: list[str] = Field(
        default_factory=list, description="Token addresses never traded"
    )
    blacklisted_creators: list[str] = Field(
        default_factory=list, description="Creator addresses never traded"
    )

    # Scheduling
    position_check_interval_seconds: float = Field(
        default=10.0, gt=0, description="Interval between automated sell checks"
    )
    health_check_interval_seconds: float = Field(
        default=60.0, gt=0, description="Interval between health checks"
    )
    health_log_sample_rate: float = Field(
        default=0.1, ge=0, le=1, description="Fraction of health checks logged"
    )
    event_queue_size: int = Field(
        default=100, gt=0, description="Maximum queued launch events"
    )

    # Simulation fills
    paper_slippage_bps: int = Field(
        default=100, ge=0, description="Simulated slippage in basis points"
    )
    paper_fee_bps: int = Field(
        default=100, ge=0, description="Simulated fee in basis points"
    )

    # Notifications
    telegram_bot_token: str | None = Field(
        default=None, description="Telegram bot token"
    )
    telegram_admin_ids: list[int] = Field(
        default_factory=list, description="Telegram admin user IDs"
    )

    # Collaborators, as "package.module:callable" factories taking the settings
    monitor_factory: str | None = Field(
        default=None, description="Launch monitor factory import path"
    )
    validator_factory: str | None = Field(
        default=None, description="Token validator factory import path"
    )
    buyer_factory: str | None = Field(
        default=None, description="Buyer factory import path (required live)"
    )
    seller_factory: str | None = Field(
        default=None, description="Seller factory import path (required live)"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _check_market_cap_range(self) -> "AppSettings":
        if self.min_market_cap > self.max_market_cap:
            raise ValueError(
                f"min_market_cap ({self.min_market_cap}) cannot exceed "
                f"max_market_cap ({self.max_market_cap})"
            )
        return self

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key and self.private_key.get_secret_value())


def load_settings(profile: str, yaml_path: str) -> AppSettings:
    """Load settings from YAML file and environment variables.

    Args:
        profile: Configuration profile name (dev, paper, prod)
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If profile is invalid
    """
    if profile not in ["dev", "paper", "prod"]:
        raise ValueError(
            f"Invalid profile: {profile}. Must be one of: dev, paper, prod"
        )

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        yaml_config["env"] = profile

        # paper never moves funds, prod always does; dev follows the YAML
        if profile == "paper":
            yaml_config["simulation_mode"] = True
        elif profile == "prod":
            yaml_config["simulation_mode"] = False

        logger.info("Loading configuration", profile=profile, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            profile=profile,
            simulation_mode=settings.simulation_mode,
            rpc_url=settings.rpc_url[:50] + "..."
            if len(settings.rpc_url) > 50
            else settings.rpc_url,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
