"""Demo program sending a few observations.

Configuration comes from the environment: ``OBSERVE_URL`` (defaults to the
public collector) and ``OBSERVE_AUTH`` (customer ID and token allocated in
the Workspace settings for the target Datastream).
"""

from __future__ import annotations

import os
import sys
import threading

from loguru import logger

from .config import load_config_from_env, setup_logging
from .orchestrator import Observer

DEFAULT_URL = "https://collect.observeinc.com/v1/http/observe-python/main"


def main() -> int:
    setup_logging(level="INFO")

    overrides = {} if os.getenv("OBSERVE_URL") else {"url": DEFAULT_URL}
    try:
        config = load_config_from_env(**overrides)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    with Observer(config) as observer:
        # Blocking: wait for the outcome
        error = observer.send({"message": "Hello, world!"}).result()
        if error:
            logger.warning(f"Error sending first observation: {error}")
        else:
            logger.info("First observation sent")

        done = threading.Event()

        def on_third(err) -> None:
            if err:
                logger.warning(f"Error sending third observation: {err}")
            else:
                logger.info("Third observation sent")
            done.set()

        def on_second(future) -> None:
            if err := future.result():
                logger.warning(f"Error sending second observation: {err}")
            else:
                logger.info("Second observation sent")
            # Plain callback style
            observer.send({"message": "Third hello"}, on_third)

        # Chained on the future
        observer.send({"message": "Second hello"}).add_done_callback(on_second)
        done.wait(config.timeout_seconds * 2)

    return 0


if __name__ == "__main__":
    sys.exit(main())
