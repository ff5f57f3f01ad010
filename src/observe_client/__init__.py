"""Observe Client - adaptive batching of structured records to an Observe collector."""

__version__ = "0.1.0"

from .config import ObserverConfig, load_config_from_env, setup_logging  # noqa: E402
from .orchestrator import Observer  # noqa: E402

__all__ = ["Observer", "ObserverConfig", "load_config_from_env", "setup_logging", "__version__"]
