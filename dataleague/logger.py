"""Logging setup shared by the command line client and the Discord bot."""

import logging
import sys

from dataleague.config import cfg

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def setup_logging(level=None):
    """Configures the root logger.

       Logs go to stderr, because stdout is reserved for the command output,
       and to the DLBOT_LOG_FILE file if one is configured.
    """
    if level is None:
        level = cfg("DLBOT_LOG_LEVEL")
    handlers = [logging.StreamHandler(sys.stderr)]
    log_file = cfg("DLBOT_LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.getLevelName(str(level).upper()),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    logging.getLogger("discord").setLevel(logging.WARNING)

    # Redirect unhandled exceptions (tracebacks) to logging
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            # Let KeyboardInterrupt print as usual
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logging.getLogger("UncaughtException").error(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = handle_exception
