"""
The Supervisor package.
Manages the lifecycle of the Envoy proxy process across restart epochs.

This package contains the central EnvoyProxy class and its helper modules,
which together resolve the bootstrap config, build startup arguments,
spawn and abort the proxy, probe its liveness and clean up after an epoch.
"""
from .errors import AbortError, ConfigGenerationError, ExitError, ProxyError, SpawnError
from .supervisor import EnvoyProxy, RunOutcome, RunState, abort_epoch, new_abort_signal

__all__ = [
    'EnvoyProxy', 'RunOutcome', 'RunState', 'abort_epoch', 'new_abort_signal',
    'ProxyError', 'ConfigGenerationError', 'SpawnError', 'AbortError', 'ExitError',
]
