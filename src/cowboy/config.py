"""
=============================================================================
COWBOY CONFIGURATION
=============================================================================

Centralized configuration for a Cowboy router.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Code                                                           │
    │      └── CowboyConfig(debug=True)                                   │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── COWBOY_DEBUG=1 python app.py                               │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The environment mapping is the same kind of mapping handed to middleware
as `env`, so a worker's bindings can configure the router directly:

    config = CowboyConfig.from_env(env)
    config.validate()
    configure_logging(config)

=============================================================================
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import logging
import os


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass
class CowboyConfig:
    """
    Router configuration.

    Example:
        config = CowboyConfig(debug=True, max_request_size=1024 * 1024)
    """

    # ─────────────────────────────────────────────────────────────────────
    # DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    debug: bool = False
    """Emit debug diagnostics from every cowboy logger."""

    log_level: str = "INFO"
    """Level used when debug is off."""

    # ─────────────────────────────────────────────────────────────────────
    # WIRE LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024
    """Raw requests larger than this are rejected with 413."""

    server_name: str = "Cowboy/1.0"
    """Value for the Server response header."""

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "CowboyConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        COWBOY_DEBUG             Enable debug output (1/true/yes/on)
        COWBOY_LOG_LEVEL         Logging level (default: INFO)
        COWBOY_MAX_REQUEST_SIZE  Max raw request bytes (default: 10 MiB)
        COWBOY_SERVER_NAME       Server header (default: Cowboy/1.0)

        =====================================================================

        Args:
            env: Mapping to read from (defaults to os.environ)
        """
        env = os.environ if env is None else env
        defaults = cls()

        return cls(
            debug=str(env.get("COWBOY_DEBUG", "")).strip().lower() in TRUTHY_VALUES,
            log_level=str(env.get("COWBOY_LOG_LEVEL", defaults.log_level)).upper(),
            max_request_size=int(env.get("COWBOY_MAX_REQUEST_SIZE", defaults.max_request_size)),
            server_name=str(env.get("COWBOY_SERVER_NAME", defaults.server_name)),
        )

    def validate(self) -> None:
        """
        Validate configuration values, failing fast at startup.

        Raises:
            ValueError: On an unknown log level or a non-positive size
        """
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}.")

        if self.max_request_size <= 0:
            raise ValueError("max_request_size must be > 0")

    @property
    def level(self) -> int:
        """The effective logging level."""
        if self.debug:
            return logging.DEBUG
        return getattr(logging, self.log_level.upper(), logging.INFO)


def configure_logging(config: CowboyConfig) -> None:
    """Configure the root logger and the cowboy logger from a config."""
    logging.basicConfig(
        level=config.level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("cowboy").setLevel(config.level)
