import logging
from pathlib import Path

from envoy_agent.local.supervisor.config_resolver import config_file

log = logging.getLogger(__name__)


def cleanup_epoch(config_dir: Path, epoch: int) -> None:
    """
    Removes the generated bootstrap file of a finished epoch.
    A leftover file only costs disk space, so failures are logged and swallowed.
    """
    file_path = config_file(config_dir, epoch)
    try:
        file_path.unlink()
        log.debug(f"Removed config file {file_path} for epoch {epoch}.")
    except OSError as e:
        log.warning(f"Failed to delete config file {file_path} for {epoch}, {e}")
