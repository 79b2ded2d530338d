import json
import logging
import requests
from dataclasses import dataclass, field
from typing import Any, Dict

log = logging.getLogger(__name__)

LIVE_STATE = "LIVE"
# The admin endpoint is always local; never route it through HTTP(S)_PROXY.
NO_PROXIES = {"http": None, "https": None}


@dataclass(frozen=True)
class ServerInfoSnapshot:
    """One read of the proxy admin `server_info` endpoint."""
    state: str
    raw: Dict[str, Any] = field(default_factory=dict)


def get_server_info(admin_port: int, host: str = "127.0.0.1", timeout: float = 1.0) -> ServerInfoSnapshot:
    """
    Fetches the proxy's server info from its local admin port.

    :param admin_port: The proxy admin port.
    :param host: The admin host.
    :param timeout: The request timeout in seconds.
    :return: The server info snapshot.
    :raises requests.exceptions.RequestException: On connection or HTTP errors.
    :raises ValueError: If the response is not a JSON object with a state.
    """
    url = f"http://{host}:{admin_port}/server_info"
    response = requests.get(url, timeout=timeout, proxies=NO_PROXIES)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, dict) or "state" not in payload:
        raise ValueError(f"unexpected server_info payload from '{url}'")
    return ServerInfoSnapshot(state=str(payload["state"]), raw=payload)


def is_live(admin_port: int, timeout: float = 1.0) -> bool:
    """
    Queries the admin endpoint once and reports whether the proxy is LIVE.
    Any error, timeout or other state counts as not live; retries are left to the caller.
    """
    try:
        info = get_server_info(admin_port, timeout=timeout)
    except (requests.exceptions.RequestException, json.JSONDecodeError, ValueError) as e:
        log.info(f"Failed retrieving server info from the proxy on port {admin_port}: {e}")
        return False

    if info.state == LIVE_STATE:
        return True

    log.info(f"Proxy server not yet live, state: {info.state}")
    return False
