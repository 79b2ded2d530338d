import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from envoy_agent.local.config import effective_settings as config

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'


class MainFormatter(logging.Formatter):
    """
    The agent's log formatter.
    Multi-line messages (such as an inlined bootstrap override) are indented
    so they stay visually attached to their record in the proxy's shared stdout.
    """

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT)

    def format(self, record):
        formatted_message = super().format(record)
        return formatted_message.replace("\n", "\n    ")


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the agent.
    This sets up the console handler and, if LOG_FILE_PATH is set, a rotating
    file handler, clearing any previously configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    # The proxy shares our stdout, so agent logs go there too.
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler (conditional) ---
    if config.LOG_FILE_PATH:
        try:
            log_path = Path(config.LOG_FILE_PATH)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=config.LOG_FILE_MAX_BYTES,
                backupCount=config.LOG_FILE_BACKUP_COUNT,
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(MainFormatter())
            root_logger.addHandler(file_handler)
        except Exception as e:
            root_logger.error(f"Failed to initialize file logging handler: {e}. Logging to file will be disabled.")

    # Third-party chatter from the liveness probe
    logging.getLogger("urllib3").setLevel(logging.WARNING)
