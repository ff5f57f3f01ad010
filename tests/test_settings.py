"""Tests for configuration management."""

import sys

import pytest
from loguru import logger
from pydantic import ValidationError

from observe_client.config import ObserverConfig, load_config_from_env, setup_logging

URL = "https://collect.example.com/v1/http"


def test_defaults():
    config = ObserverConfig(url=URL, auth="token")

    assert config.batch_time_ms == 5000
    assert config.batch_size == 200
    assert config.size_limit_bytes == 2_000_000
    assert config.batch_time_seconds == 5.0


@pytest.mark.parametrize(
    "params",
    [
        {"auth": "token"},
        {"url": URL},
        {"url": URL, "auth": ""},
        {"url": "/relative/path", "auth": "token"},
        {"url": "ftp://collect.example.com", "auth": "token"},
        {"url": URL, "auth": "token", "batch_time_ms": 0},
        {"url": URL, "auth": "token", "batch_size": -1},
        {"url": URL, "auth": "token", "size_limit_bytes": 0},
        {"url": URL, "auth": "token", "unknown": 1},
    ],
)
def test_invalid_configuration(params):
    with pytest.raises(ValidationError):
        ObserverConfig(**params)


def test_config_is_immutable():
    config = ObserverConfig(url=URL, auth="token")

    with pytest.raises(ValidationError):
        config.batch_size = 10


def test_load_from_env():
    """Environment variables fill the config, explicit overrides win."""
    logger.info("⚙️  Testing environment configuration...")
    environ = {
        "OBSERVE_URL": URL,
        "OBSERVE_AUTH": "123 secret",
        "OBSERVE_BATCH_TIME_MS": "250",
        "OBSERVE_BATCH_SIZE": "10",
        "OTHER_SETTING": "ignored",
    }

    config = load_config_from_env(environ=environ, batch_size=20)

    assert config.url == URL
    assert config.auth == "123 secret"
    assert config.batch_time_ms == 250
    assert config.batch_size == 20, "Explicit overrides take precedence"
    assert config.size_limit_bytes == 2_000_000


def test_load_from_env_skips_bad_numbers(log_messages):
    environ = {"OBSERVE_URL": URL, "OBSERVE_AUTH": "token", "OBSERVE_BATCH_SIZE": "many"}

    config = load_config_from_env(environ=environ)

    assert config.batch_size == 200
    assert any("Invalid value for OBSERVE_BATCH_SIZE" in message for message in log_messages)


def test_load_from_env_custom_prefix():
    config = load_config_from_env(prefix="APP_", environ={"APP_URL": URL, "APP_AUTH": "token"})

    assert config.url == URL


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "observe.log"
    try:
        setup_logging(level="DEBUG", log_to_console=False, log_file=log_file)
        logger.debug("batch sent")
        logger.complete()
    finally:
        logger.remove()
        logger.add(sys.stderr)

    assert "batch sent" in log_file.read_text()
