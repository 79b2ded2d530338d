import os
import contextlib
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from envoy_agent.local.supervisor.config_resolver import config_file
from envoy_agent.local.supervisor.errors import ConfigGenerationError

if TYPE_CHECKING:
    from envoy_agent.local.config import ProxyConfiguration

log = logging.getLogger(__name__)

META_PREFIX = "ISTIO_META_"
XDS_CLUSTER_NAME = "xds-grpc"


class BootstrapWriter:
    """
    Writes the generated bootstrap file for a proxy epoch.

    The document only carries what the proxy needs to reach the discovery
    service; everything else is delivered dynamically over xDS.
    """

    def __init__(self, config: "ProxyConfiguration", environ: Optional[Mapping[str, str]] = None) -> None:
        self.config = config
        self.environ = os.environ if environ is None else environ

    def node_metadata(self) -> Dict[str, str]:
        """Collects node metadata from ISTIO_META_* variables and pod identity."""
        meta = {
            key[len(META_PREFIX):]: value
            for key, value in self.environ.items()
            if key.startswith(META_PREFIX)
        }
        cfg = self.config
        if cfg.pod_name:
            meta["POD_NAME"] = cfg.pod_name
        if cfg.pod_namespace:
            meta["POD_NAMESPACE"] = cfg.pod_namespace
        if cfg.pod_ip:
            meta["INSTANCE_IP"] = cfg.pod_ip
        if cfg.node_ips:
            meta["INSTANCE_IPS"] = ",".join(cfg.node_ips)
        if cfg.sds_uds_path and cfg.sds_token_path:
            meta["SDS"] = "true"
        if cfg.disable_report_calls:
            meta["DISABLE_REPORT_CALLS"] = "true"
        return meta

    def _xds_cluster(self) -> Dict[str, Any]:
        host, _, port = self.config.discovery_address.rpartition(":")
        cluster: Dict[str, Any] = {
            "name": XDS_CLUSTER_NAME,
            "type": "STRICT_DNS",
            "connect_timeout": "1s",
            "lb_policy": "ROUND_ROBIN",
            "http2_protocol_options": {},
            "hosts": [{"socket_address": {"address": host or "localhost", "port_value": int(port or 15010)}}],
        }
        if self.config.dns_refresh_rate:
            cluster["dns_refresh_rate"] = self.config.dns_refresh_rate
        if self.config.control_plane_auth:
            cluster["tls_context"] = {
                "common_tls_context": {
                    "validation_context": {
                        "verify_subject_alt_name": list(self.config.pilot_subject_alt_names),
                    },
                },
            }
        return cluster

    def render(self) -> Dict[str, Any]:
        """Builds the bootstrap document as a dictionary."""
        cfg = self.config
        return {
            "node": {
                "id": cfg.service_node,
                "cluster": cfg.service_cluster,
                "metadata": self.node_metadata(),
            },
            "admin": {
                "access_log_path": "/dev/null",
                "address": {"socket_address": {"address": "127.0.0.1", "port_value": cfg.admin_port}},
            },
            "dynamic_resources": {
                "lds_config": {"ads": {}},
                "cds_config": {"ads": {}},
                "ads_config": {
                    "api_type": "GRPC",
                    "grpc_services": [{"envoy_grpc": {"cluster_name": XDS_CLUSTER_NAME}}],
                },
            },
            "static_resources": {"clusters": [self._xds_cluster()]},
        }

    def create_file_for_epoch(self, epoch: int) -> Path:
        """
        Atomically writes the bootstrap file for an epoch.

        :param epoch: The restart epoch the file belongs to.
        :return: The path of the written file.
        :raises ConfigGenerationError: If the document could not be rendered or written.
        """
        target = config_file(self.config.config_dir, epoch)
        temp_path = target.with_suffix(".tmp")
        try:
            body = json.dumps(self.render(), indent=2)
            target.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(body)
            temp_path.replace(target)
        except (OSError, TypeError, ValueError) as e:
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise ConfigGenerationError(f"failed to write bootstrap config '{target}': {e}") from e
        log.debug(f"Bootstrap config for epoch {epoch} written to {target}")
        return target
