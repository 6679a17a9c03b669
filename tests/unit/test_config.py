"""
Unit tests for configuration and logging setup.
"""

import logging
import os

from src.core.config import Config
from src.core.logging_config import ColoredFormatter
from src.engine import EngineLimits


def test_defaults():
    """Test configuration without environment overrides."""
    config = Config()
    assert config.host == '127.0.0.1'
    assert config.socketio_async_mode == 'threading'
    assert config.engine_limits() == EngineLimits()
    assert config.validate()


def test_environment_overrides(monkeypatch):
    """Test limits taken from the environment."""
    monkeypatch.setenv('MAX_DICE_COUNT', '10')
    monkeypatch.setenv('MAX_PAIRS', '500')
    monkeypatch.setenv('STATE_FILE', '/tmp/odds.json')
    config = Config()
    assert config.engine_limits().max_dice_count == 10
    assert config.engine_limits().max_pairs == 500
    assert config.state_file == '/tmp/odds.json'


def test_env_file(tmp_path, monkeypatch):
    """Test loading settings from an explicit .env file."""
    monkeypatch.delenv('PORT', raising=False)
    env_file = tmp_path / '.env'
    env_file.write_text('PORT=6123\n')
    try:
        assert Config(str(env_file)).port == 6123
    finally:
        os.environ.pop('PORT', None)


def test_invalid_settings(monkeypatch):
    """Test that unusable settings fail validation."""
    monkeypatch.setenv('SOCKETIO_ASYNC_MODE', 'carrier-pigeon')
    assert not Config().validate()

    monkeypatch.setenv('SOCKETIO_ASYNC_MODE', 'threading')
    monkeypatch.setenv('MAX_SUPPORT', '0')
    assert not Config().validate()


def test_colored_formatter_restores_level_name():
    """Test that coloring does not leak into other handlers."""
    record = logging.LogRecord('arcane_odds', logging.WARNING, __file__, 1, 'careful', None, None)
    formatted = ColoredFormatter('%(levelname)s %(message)s').format(record)
    assert 'WARNING' in formatted
    assert 'careful' in formatted
    assert record.levelname == 'WARNING'
