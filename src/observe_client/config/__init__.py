"""Configuration module for the Observe client."""

from .logger_config import setup_logging
from .settings import ObserverConfig, load_config_from_env

__all__ = ["ObserverConfig", "load_config_from_env", "setup_logging"]
