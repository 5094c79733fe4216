"""
Logging setup for the tracker and its admin app.

Events are captured on the caller's thread while remote writes run on the
sync dispatcher's worker, so every record is funnelled through one queue and
written to stdout by a single listener thread.
"""

import logging
import logging.handlers
import sys
from queue import Queue
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

# Driver chatter that would drown out capture logs outside debug mode
QUIET_LOGGERS = (
    "pymongo",
    "pymongo.serverSelection",
    "pymongo.connection",
    "pymongo.topology",
    "urllib3",
)


class ThreadSafeLoggingConfig:
    """Owns the log queue and the listener that drains it."""

    def __init__(self):
        self._log_listener: Optional[logging.handlers.QueueListener] = None
        self._log_queue: Optional[Queue] = None

    def setup_logging(self, debug: bool = False) -> None:
        """Route the root logger through a queue.

        Args:
            debug: Log at DEBUG and keep driver and access logs
        """
        self.stop()

        self._log_queue = Queue()
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self._log_listener = logging.handlers.QueueListener(
            self._log_queue, console_handler, respect_handler_level=True
        )
        self._log_listener.start()

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(logging.handlers.QueueHandler(self._log_queue))
        root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

        if not debug:
            self._quiet_dependencies()

    def _quiet_dependencies(self) -> None:
        for name in QUIET_LOGGERS:
            logger = logging.getLogger(name)
            logger.setLevel(logging.WARNING)
            logger.handlers.clear()
            logger.addHandler(logging.NullHandler())
            logger.propagate = False

        # Admin app request lines; warnings and errors still reach the root
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    def stop(self) -> None:
        """Flush and stop the listener. Safe to call when not started."""
        if self._log_listener:
            self._log_listener.stop()
            self._log_listener = None
        self._log_queue = None


logging_config = ThreadSafeLoggingConfig()


def setup_logging(debug: bool = False) -> None:
    logging_config.setup_logging(debug)


def stop_logging() -> None:
    logging_config.stop()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
