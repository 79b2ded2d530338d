from typing import Any


class ProxyError(Exception):
    """Base class for errors raised while supervising a proxy epoch."""


class ConfigGenerationError(ProxyError):
    """The bootstrap config for an epoch could not be written. Fatal for the agent."""


class SpawnError(ProxyError):
    """The proxy process could not be started. No process exists."""


class AbortError(ProxyError):
    """The epoch was aborted by the caller; `cause` is the abort's reason."""

    def __init__(self, epoch: int, cause: Any = None) -> None:
        self.epoch = epoch
        self.cause = cause
        super().__init__(f"epoch {epoch} aborted: {cause}" if cause is not None else f"epoch {epoch} aborted")


class ExitError(ProxyError):
    """The proxy process exited with a non-zero status."""

    def __init__(self, epoch: int, exit_code: int) -> None:
        self.epoch = epoch
        self.exit_code = exit_code
        if exit_code < 0:
            message = f"epoch {epoch} terminated by signal {-exit_code}"
        else:
            message = f"epoch {epoch} exited with status {exit_code}"
        super().__init__(message)
