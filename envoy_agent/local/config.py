import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple

import envoy_agent.settings as default_settings
from envoy_agent.local.durations import convert_duration

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProxyConfiguration:
    """
    Immutable settings for one supervised proxy instance.

    Built once when the proxy controller is constructed and never changed
    afterwards; a restart with new settings needs a new controller.
    """
    binary_path: Path
    config_dir: Path
    admin_port: int
    drain_duration: timedelta
    parent_shutdown_duration: timedelta
    service_cluster: str
    service_node: str
    stat_name_length: int
    concurrency: int = 0
    node_ips: Tuple[str, ...] = ()
    custom_config_file: str = ""
    log_level: str = ""
    component_log_level: str = ""
    bootstrap_override_path: str = ""

    # Only consumed by the bootstrap writer.
    discovery_address: str = ""
    dns_refresh_rate: str = ""
    pod_name: str = ""
    pod_namespace: str = ""
    pod_ip: str = ""
    sds_uds_path: str = ""
    sds_token_path: str = ""
    control_plane_auth: bool = False
    disable_report_calls: bool = False
    pilot_subject_alt_names: Tuple[str, ...] = ()
    mixer_subject_alt_names: Tuple[str, ...] = ()


class MergedSettings:
    """
    Merges default settings with JSON overrides.

    Precedence:
    1. Base values from `settings.py`.
    2. Overrides from `.env` / the environment (handled by `python-dotenv` in settings.py).
    3. Overrides from the overrides JSON file for settings in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self, overrides_path: Optional[Path] = None) -> None:
        """Initializes the settings object by loading defaults and overrides."""
        self.OVERRIDES_JSON_PATH: Path = Path(overrides_path or default_settings.OVERRIDES_JSON_PATH)

        self._load_defaults()
        self._load_overrides()

    def _load_defaults(self) -> None:
        """Loads all uppercase attributes from the settings module as defaults."""
        for key in dir(default_settings):
            if key.isupper() and key != "OVERRIDES_JSON_PATH":
                setattr(self, key, getattr(default_settings, key))

    def _load_overrides(self) -> None:
        """
        Loads and applies settings from the overrides file.

        Only keys listed in `MODIFIABLE_SETTINGS` are applied.
        """
        if not self.OVERRIDES_JSON_PATH.exists():
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('r') as f:
                overrides = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log.error(f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}")
            return

        if not isinstance(overrides, dict):
            log.error(f"Overrides file '{self.OVERRIDES_JSON_PATH}' must contain a JSON object. Ignoring.")
            return

        log.info(f"Loading runtime configuration overrides from {self.OVERRIDES_JSON_PATH}")
        for key, value in overrides.items():
            if not hasattr(self, key):
                log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                continue

            original_value = getattr(self, key)
            try:
                if isinstance(original_value, Path):
                    value = Path(value)
                elif isinstance(original_value, bool):
                    value = str(value).lower() in ('true', '1', 't', 'yes', 'y')
                elif original_value is not None:
                    value = type(original_value)(value)
            except (ValueError, TypeError) as e:
                log.error(f"Could not convert override value '{value}' for key '{key}': {e}")
                continue
            setattr(self, key, value)
            log.debug(f"Overridden setting: {key} = {value}")


def build_proxy_config(settings: Optional[MergedSettings] = None) -> ProxyConfiguration:
    """
    Builds the immutable proxy configuration from the effective settings.

    :param settings: The merged settings to read; defaults to the module instance.
    :return: A ProxyConfiguration ready to hand to the proxy controller.
    """
    s = settings or effective_settings
    return ProxyConfiguration(
        binary_path=Path(s.BINARY_PATH),
        config_dir=Path(s.CONFIG_DIR),
        admin_port=int(s.PROXY_ADMIN_PORT),
        drain_duration=convert_duration(s.DRAIN_DURATION),
        parent_shutdown_duration=convert_duration(s.PARENT_SHUTDOWN_DURATION),
        service_cluster=s.SERVICE_CLUSTER,
        service_node=s.SERVICE_NODE,
        stat_name_length=int(s.STAT_NAME_LENGTH),
        concurrency=int(s.CONCURRENCY),
        node_ips=tuple(s.NODE_IPS),
        custom_config_file=s.CUSTOM_CONFIG_FILE,
        log_level=s.PROXY_LOG_LEVEL,
        component_log_level=s.PROXY_COMPONENT_LOG_LEVEL,
        bootstrap_override_path=s.BOOTSTRAP_OVERRIDE_PATH,
        discovery_address=s.DISCOVERY_ADDRESS,
        dns_refresh_rate=s.DNS_REFRESH_RATE,
        pod_name=s.POD_NAME,
        pod_namespace=s.POD_NAMESPACE,
        pod_ip=s.POD_IP,
        sds_uds_path=s.SDS_UDS_PATH,
        sds_token_path=s.SDS_TOKEN_PATH,
        control_plane_auth=bool(s.CONTROL_PLANE_AUTH),
        disable_report_calls=bool(s.DISABLE_REPORT_CALLS),
        pilot_subject_alt_names=tuple(s.PILOT_SUBJECT_ALT_NAME),
        mixer_subject_alt_names=tuple(s.MIXER_SUBJECT_ALT_NAME),
    )

# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
