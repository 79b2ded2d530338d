"""
A minimal entry point that runs a single proxy epoch in the foreground.

The agent's full restart controller lives elsewhere; this driver starts epoch
0, logs once the proxy reports LIVE, and turns SIGTERM/SIGINT into an abort.
"""
import time
import signal
import logging
import threading
import setproctitle

from envoy_agent.local import build_proxy_config, effective_settings
from envoy_agent.local.supervisor import (
    AbortError, EnvoyProxy, ExitError, SpawnError, abort_epoch, new_abort_signal,
)

log = logging.getLogger(__name__)


def wait_until_live(proxy: EnvoyProxy, stop: threading.Event, interval: float) -> bool:
    """
    Polls the proxy admin endpoint until it reports LIVE or `stop` is set.

    :return: True once the proxy is live, False if polling was stopped first.
    """
    while not stop.is_set():
        if proxy.is_live():
            log.info("Proxy is live.")
            return True
        stop.wait(interval)
    return False


def run_proxy(proxy: EnvoyProxy, epoch: int = 0) -> int:
    """
    Runs one epoch until the proxy exits or the agent is signalled.

    :return: The process exit status for the agent.
    """
    abort = new_abort_signal()
    stop_polling = threading.Event()

    def _on_signal(signum, _frame):
        log.info(f"Received signal {signal.Signals(signum).name}. Stopping proxy epoch {epoch}.")
        abort_epoch(abort, InterruptedError(f"agent received {signal.Signals(signum).name}"))

    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)

    threading.Thread(
        target=wait_until_live,
        args=(proxy, stop_polling, effective_settings.PROBE_POLL_INTERVAL),
        daemon=True,
        name="LivenessPollThread",
    ).start()

    start_time = time.time()
    try:
        proxy.run(epoch, abort)
        return 0
    except AbortError as e:
        log.info(f"Proxy stopped: {e}")
        return 0
    except ExitError as e:
        log.error(f"Proxy failed: {e}")
        return e.exit_code if e.exit_code > 0 else 1
    except SpawnError as e:
        log.critical(f"Proxy could not be started: {e}")
        return 1
    finally:
        stop_polling.set()
        if not proxy.config.custom_config_file:
            proxy.cleanup(epoch)
        log.info(f"Proxy epoch {epoch} ran for {time.strftime('%H:%M:%S', time.gmtime(time.time() - start_time))}.")


def main() -> int:
    setproctitle.setproctitle("envoy-agent - proxy")
    return run_proxy(EnvoyProxy(build_proxy_config()))
