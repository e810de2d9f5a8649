# src/tasker_client/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import close_state, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/tasker")
    setup_logging(log_dir=log_dir, console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info("Starting %s...", getattr(settings, "app_name", "tasker"))

    try:
        state = create_initial_state(settings=settings)
    except RuntimeError as e:
        logger.error("%s", e)
        raise SystemExit(2) from e

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run.")
    finally:
        close_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
