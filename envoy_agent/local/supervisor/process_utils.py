import sys
import psutil
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

log = logging.getLogger(__name__)


#* --- Process Creation ---
def get_executable_path(base_path: Union[str, Path]) -> Path:
    """Returns the platform-specific full path for an executable."""
    base_path = Path(base_path)
    if sys.platform == "win32" and not base_path.suffix:
        return base_path.with_suffix(".exe")
    return base_path

def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific creation flags for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {}


#* --- Process Status ---
def _get_proc_status_string(proc: psutil.Process) -> str:
    """Gets a string representation of a process status."""
    try:
        if proc.status() == psutil.STATUS_ZOMBIE:
            return "zombie"
        return "running"
    except psutil.NoSuchProcess:
        return "stopped"
    except psutil.Error:
        return "unknown"


class ProcessHandle:
    """
    Owns a single proxy child process for the lifetime of one epoch.

    The child inherits this process's stdout and stderr and gets no stdin.
    """

    def __init__(self, args: List[str]) -> None:
        self.args = list(args)
        self._popen: Optional[subprocess.Popen] = None
        self._proc: Optional[psutil.Process] = None

    @property
    def pid(self) -> Optional[int]:
        return self._popen.pid if self._popen else None

    def start(self) -> None:
        """Starts the child process. OS errors propagate to the caller."""
        if self._popen is not None:
            raise RuntimeError(f"Process already started with PID {self._popen.pid}")
        self._popen = subprocess.Popen(
            self.args,
            stdin=subprocess.DEVNULL,
            stdout=None,
            stderr=None,
            **_get_popen_creation_flags(),
        )
        try:
            self._proc = psutil.Process(self._popen.pid)
        except psutil.NoSuchProcess:
            # Exited before we could attach; wait() still reports its status.
            self._proc = None

    def wait(self) -> int:
        """Blocks until the child exits and returns its exit code."""
        if self._popen is None:
            raise RuntimeError("Process was never started")
        return self._popen.wait()

    def terminate(self) -> None:
        """Forcefully kills the child. Does not wait for it to exit."""
        if self._popen is None:
            raise RuntimeError("Process was never started")
        self._popen.kill()

    def status(self) -> str:
        """Returns 'running', 'zombie', 'stopped' or 'unknown'."""
        if self._popen is None:
            return "stopped"
        if self._popen.poll() is not None or self._proc is None:
            return "stopped"
        return _get_proc_status_string(self._proc)
