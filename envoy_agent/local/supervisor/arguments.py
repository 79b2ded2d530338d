import logging
import ipaddress
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from envoy_agent.local.durations import whole_seconds

if TYPE_CHECKING:
    from envoy_agent.local.config import ProxyConfiguration

log = logging.getLogger(__name__)


def is_ipv6_proxy(ip_addrs: Iterable[str]) -> bool:
    """
    Returns False as soon as one address parses as IPv4, True otherwise.

    Unparseable entries are skipped, so an empty or all-invalid list counts
    as IPv6.
    """
    for raw in ip_addrs:
        try:
            addr = ipaddress.ip_address(raw)
        except ValueError:
            # Invalid IPs should have been rejected earlier; skip rather than fail startup.
            continue
        if addr.version == 4 or addr.ipv4_mapped is not None:
            return False
    return True


def extra_log_args(log_level: str, component_log_level: str) -> List[str]:
    """Returns the proxy log level flags, captured once when the controller is built."""
    args: List[str] = []
    if log_level:
        args += ["-l", log_level]
    if component_log_level:
        args += ["--component-log-level", component_log_level]
    return args


def read_bootstrap_override(path: Optional[Union[str, Path]]) -> Optional[str]:
    """Reads the raw override contents, or returns None (with a warning) when unreadable."""
    if not path:
        return None
    try:
        return Path(path).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed to read bootstrap override {path}, {e}")
        return None


def build_args(fname: Union[str, Path], epoch: int, config: "ProxyConfiguration",
               extra_args: Optional[List[str]] = None,
               bootstrap_override: Optional[Union[str, Path]] = None) -> List[str]:
    """
    Builds the proxy startup arguments for an epoch.

    :param fname: The bootstrap file to load.
    :param epoch: The restart epoch.
    :param config: The proxy configuration.
    :param extra_args: Log level flags appended after the required flags.
    :param bootstrap_override: Optional file whose raw contents are passed with --config-yaml.
    :return: The argument list, not including the binary itself.
    """
    address_type = "v6" if is_ipv6_proxy(config.node_ips) else "v4"
    startup_args = [
        "-c", str(fname),
        "--restart-epoch", str(epoch),
        "--drain-time-s", str(whole_seconds(config.drain_duration)),
        "--parent-shutdown-time-s", str(whole_seconds(config.parent_shutdown_duration)),
        "--service-cluster", config.service_cluster,
        "--service-node", config.service_node,
        "--max-obj-name-len", str(config.stat_name_length),
        "--local-address-ip-version", address_type,
    ]

    startup_args += extra_args or []

    override = read_bootstrap_override(bootstrap_override)
    if override is not None:
        startup_args += ["--config-yaml", override]

    if config.concurrency > 0:
        startup_args += ["--concurrency", str(config.concurrency)]

    return startup_args
