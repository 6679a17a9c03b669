"""
Configuration management for Arcane Odds.

Provides centralized configuration loading from environment variables
with sensible defaults for all settings.
"""

import os
from pathlib import Path
from typing import Optional
import logging

from dotenv import load_dotenv

from src.engine.evaluator import EngineLimits

logger = logging.getLogger(__name__)

VALID_ASYNC_MODES = ('threading', 'eventlet', 'gevent')


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


class Config:
    """
    Centralized configuration management for Arcane Odds.

    Loads configuration from environment variables with fallback defaults.
    Supports .env files via python-dotenv.

    Example:
        config = Config()
        print(config.port)            # 5000
        print(config.engine_limits()) # EngineLimits(max_dice_count=1000, ...)
    """

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env_file: Optional path to .env file. If None, auto-discovers .env
                     in project root or skips if not found.
        """
        if env_file:
            load_dotenv(env_file)
            logger.info(f"Loaded configuration from {env_file}")
        else:
            project_root = Path(__file__).parent.parent.parent
            env_path = project_root / '.env'
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded configuration from {env_path}")
            else:
                logger.debug("No .env file found, using environment variables and defaults")

        # === Server Settings ===
        self.host = os.getenv('HOST', '127.0.0.1')
        self.port = int(os.getenv('PORT', '5000'))
        self.debug = _env_flag('DEBUG', 'False')
        self.secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
        self.socketio_async_mode = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')

        # === Logging ===
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.log_file = os.getenv('LOG_FILE', None)

        # === Host state ===
        self.state_file = os.getenv('STATE_FILE', 'arcane_odds_state.json')

        # === Engine limits ===
        defaults = EngineLimits()
        self.max_dice_count = int(os.getenv('MAX_DICE_COUNT', str(defaults.max_dice_count)))
        self.max_die_size = int(os.getenv('MAX_DIE_SIZE', str(defaults.max_die_size)))
        self.max_repeat = int(os.getenv('MAX_REPEAT', str(defaults.max_repeat)))
        self.max_support = int(os.getenv('MAX_SUPPORT', str(defaults.max_support)))
        self.max_pairs = int(os.getenv('MAX_PAIRS', str(defaults.max_pairs)))

    def engine_limits(self) -> EngineLimits:
        """Build the evaluator limits from configuration."""
        return EngineLimits(
            max_dice_count=self.max_dice_count,
            max_die_size=self.max_die_size,
            max_repeat=self.max_repeat,
            max_support=self.max_support,
            max_pairs=self.max_pairs,
        )

    def validate(self) -> bool:
        """
        Validate configuration and log problems.

        Returns:
            True if config is valid, False if a setting is unusable
        """
        valid = True

        if self.log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            logger.error(f"Invalid LOG_LEVEL: {self.log_level}")
            valid = False

        if self.socketio_async_mode not in VALID_ASYNC_MODES:
            logger.error(
                f"Invalid SOCKETIO_ASYNC_MODE: {self.socketio_async_mode}. "
                f"Must be one of {', '.join(VALID_ASYNC_MODES)}"
            )
            valid = False

        for name in ('max_dice_count', 'max_die_size', 'max_repeat', 'max_support', 'max_pairs'):
            if getattr(self, name) < 1:
                logger.error(f"{name.upper()} must be at least 1, got {getattr(self, name)}")
                valid = False

        if not self.debug and self.secret_key == 'dev-secret-key-change-in-production':
            logger.warning("Using default SECRET_KEY in production mode! Set SECRET_KEY environment variable.")

        return valid

    def __repr__(self) -> str:
        """Safe representation hiding sensitive values."""
        return (
            f"Config("
            f"host={self.host}, "
            f"port={self.port}, "
            f"debug={self.debug}, "
            f"log_level={self.log_level})"
        )


# Global config instance (lazy-loaded)
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global config instance (singleton pattern).

    Returns:
        Global Config instance
    """
    global _config
    if _config is None:
        _config = Config()
        _config.validate()
    return _config


__all__ = ['Config', 'get_config']
