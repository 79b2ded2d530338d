import os
import logging
import threading
import subprocess
from concurrent import futures
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from envoy_agent import settings
from envoy_agent.local.config import ProxyConfiguration
from envoy_agent.local.supervisor import arguments, liveness
from envoy_agent.local.supervisor.bootstrap import BootstrapWriter
from envoy_agent.local.supervisor.cleanup import cleanup_epoch
from envoy_agent.local.supervisor.config_resolver import resolve_config_path, select_variant
from envoy_agent.local.supervisor.errors import AbortError, ConfigGenerationError, ExitError, SpawnError
from envoy_agent.local.supervisor.process_utils import ProcessHandle, get_executable_path

log = logging.getLogger(__name__)

ABORT_CHECK_INTERVAL = 0.5


class RunState(str, Enum):
    RESOLVING = "resolving"
    SPAWNING = "spawning"
    RUNNING = "running"
    EXITED = "exited"
    ABORTED = "aborted"
    SPAWN_FAILED = "spawn_failed"


@dataclass(frozen=True)
class RunOutcome:
    """Terminal result of a run. Clean exits return it; aborts and failed exits attach it to the raised error as `outcome`."""
    epoch: int
    state: RunState
    exit_code: Optional[int] = None
    cause: Any = None

    @property
    def completed(self) -> bool:
        return self.state == RunState.EXITED


def new_abort_signal() -> futures.Future:
    """Creates the future a caller fires to abort a running epoch."""
    return futures.Future()


def abort_epoch(abort: futures.Future, cause: Any = None) -> bool:
    """
    Fires an abort signal with the given cause.

    :return: True if this call fired the signal, False if it had already fired.
    """
    try:
        abort.set_result(cause)
        return True
    except futures.InvalidStateError:
        return False


def exit_agent(error: BaseException) -> None:
    """Terminates the whole agent so the orchestrator reports the failure instead of a restart loop."""
    log.critical(f"Halting agent after fatal error: {error}")
    logging.shutdown()
    os._exit(1)


def _abort_cause(abort: futures.Future) -> Any:
    if abort.cancelled():
        return None
    error = abort.exception()
    return error if error is not None else abort.result()


def _watch_exit(handle: ProcessHandle, exited: futures.Future) -> None:
    """Target for the exit watcher thread. Resolves `exited` with the child's exit code."""
    try:
        exited.set_result(handle.wait())
    except Exception as e:
        exited.set_exception(e)


class EnvoyProxy:
    """
    Runs proxy epochs: one child process per `run` call, hot restarted by the
    caller with increasing epoch numbers.
    """

    def __init__(
        self,
        config: ProxyConfiguration,
        bootstrap_writer: Optional[BootstrapWriter] = None,
        handle_factory: Callable[[List[str]], ProcessHandle] = ProcessHandle,
        fatal_handler: Callable[[BaseException], None] = exit_agent,
        drain_path: Union[str, Path] = settings.DRAIN_FILE_PATH,
        probe_timeout: float = settings.LIVENESS_PROBE_TIMEOUT,
    ) -> None:
        self.config = config
        self.bootstrap_writer = bootstrap_writer or BootstrapWriter(config)
        self.handle_factory = handle_factory
        self.fatal_handler = fatal_handler
        self.drain_path = Path(drain_path)
        self.probe_timeout = probe_timeout
        # Log level flags are fixed for the lifetime of this controller.
        self.extra_args = arguments.extra_log_args(config.log_level, config.component_log_level)

        self.states: Dict[int, RunState] = {}
        self._states_lock = threading.Lock()

    def _set_state(self, epoch: int, state: RunState) -> None:
        with self._states_lock:
            self.states[epoch] = state
        log.debug(f"Epoch {epoch} -> {state.value}")

    def state_of(self, epoch: int) -> Optional[RunState]:
        """Returns the last known state of an epoch, or None if it never ran or was cleaned up."""
        with self._states_lock:
            return self.states.get(epoch)

    def args(self, fname: Union[str, Path], epoch: int) -> List[str]:
        """Returns the startup arguments for an epoch, not including the binary."""
        return arguments.build_args(
            fname, epoch, self.config,
            extra_args=self.extra_args,
            bootstrap_override=self.config.bootstrap_override_path,
        )

    def run(self, epoch: int, abort: futures.Future, drain: bool = False) -> RunOutcome:
        """
        Runs one proxy epoch until the process exits or `abort` fires.

        :param epoch: The restart epoch, passed to the proxy for hot restart handoff.
        :param abort: A future the caller resolves (with a cause) to stop this epoch.
        :param drain: If True, start with the drain config instead of a generated one.
        :return: The outcome of a clean exit.
        :raises ConfigGenerationError: After the fatal handler, if bootstrap generation failed.
        :raises SpawnError: If the process could not be started.
        :raises AbortError: If `abort` fired before the process exited.
        :raises ExitError: If the process exited with a non-zero status.
        """
        if epoch < 0:
            raise ValueError(f"Epoch must be non-negative, got {epoch}")

        self._set_state(epoch, RunState.RESOLVING)
        variant = select_variant(self.config, epoch, drain)
        try:
            fname = resolve_config_path(variant, self.bootstrap_writer, self.drain_path)
        except ConfigGenerationError as e:
            log.critical(f"Failed to generate bootstrap config: {e}")
            # Never retry: the caller would loop writing a broken artifact.
            self.fatal_handler(e)
            raise

        self._set_state(epoch, RunState.SPAWNING)
        args = self.args(fname, epoch)
        log.info(f"Envoy command: {args}")

        handle = self.handle_factory([str(get_executable_path(self.config.binary_path))] + args)
        try:
            handle.start()
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self._set_state(epoch, RunState.SPAWN_FAILED)
            log.error(f"Failed to start proxy for epoch {epoch}: {e}")
            raise SpawnError(f"failed to start '{self.config.binary_path}' for epoch {epoch}: {e}") from e

        self._set_state(epoch, RunState.RUNNING)
        log.info(f"Epoch {epoch} started with PID: {handle.pid}")

        exited: futures.Future = futures.Future()
        watcher = threading.Thread(
            target=_watch_exit,
            args=(handle, exited),
            daemon=True,
            name=f"EnvoyExitWatcher-{epoch}",
        )
        watcher.start()

        # Re-check on a timeout: an abort fired by a signal handler on this thread
        # can land before the waiters are installed and would never wake the wait.
        while not (abort.done() or exited.done()):
            futures.wait([abort, exited], timeout=ABORT_CHECK_INTERVAL, return_when=futures.FIRST_COMPLETED)

        if abort.done():
            cause = _abort_cause(abort)
            log.warning(f"Aborting epoch {epoch}")
            try:
                handle.terminate()
            except Exception as e:
                log.warning(f"Killing epoch {epoch} caused an error {e}, process status: {handle.status()}")
            else:
                log.info(f"Killed epoch {epoch}, process status: {handle.status()}")
            self._set_state(epoch, RunState.ABORTED)
            # The exit watcher finishes on its own once the kill lands.
            error = AbortError(epoch, cause)
            error.outcome = RunOutcome(epoch=epoch, state=RunState.ABORTED, cause=cause)
            raise error from (cause if isinstance(cause, BaseException) else None)

        exit_code = exited.result()
        self._set_state(epoch, RunState.EXITED)
        if exit_code != 0:
            log.warning(f"Epoch {epoch} exited with status {exit_code}")
            error = ExitError(epoch, exit_code)
            error.outcome = RunOutcome(epoch=epoch, state=RunState.EXITED, exit_code=exit_code)
            raise error
        log.info(f"Epoch {epoch} exited cleanly")
        return RunOutcome(epoch=epoch, state=RunState.EXITED, exit_code=exit_code)

    def cleanup(self, epoch: int) -> None:
        """Removes the generated bootstrap file for a finished epoch."""
        with self._states_lock:
            self.states.pop(epoch, None)
        cleanup_epoch(self.config.config_dir, epoch)

    def is_live(self) -> bool:
        """Reports whether the running proxy's admin endpoint says LIVE."""
        return liveness.is_live(self.config.admin_port, timeout=self.probe_timeout)
