"""Startup errors raised by the bot controller."""


class StartupError(Exception):
    """The bot could not be started."""


class ConfigurationError(StartupError):
    """Required configuration is missing or invalid."""


class ConnectivityError(StartupError):
    """The RPC node could not be reached."""
