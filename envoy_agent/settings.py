"""
This module contains the default configuration settings for the envoy agent.
It defines paths, proxy startup settings and logging configuration.
Values are read from the environment (and an optional .env file) once at import time.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)

#* --- Core Paths ---
CONFIG_DIR = pathlib.Path(os.getenv("ENVOY_CONFIG_DIR", "/etc/istio/proxy"))
OVERRIDES_JSON_PATH = pathlib.Path(os.getenv("ENVOY_AGENT_OVERRIDES", str(CONFIG_DIR / "overrides.json")))

#* --- Proxy Executable ---
BINARY_PATH = pathlib.Path(os.getenv("ENVOY_BINARY_PATH", "/usr/local/bin/envoy"))

#* --- Bootstrap Files ---
# Generated bootstrap files are named from this template and written under CONFIG_DIR.
EPOCH_FILE_TEMPLATE = "envoy-rev{epoch}.json"
# Bootstrap config used for draining on proxy termination.
DRAIN_FILE_PATH = pathlib.Path("/var/lib/istio/envoy/envoy_bootstrap_drain.json")
# An optional user supplied config file used instead of the generated one.
CUSTOM_CONFIG_FILE = os.getenv("ENVOY_CUSTOM_CONFIG_FILE", "")
# Raw contents of this file are passed to the proxy through --config-yaml.
BOOTSTRAP_OVERRIDE_PATH = os.getenv("ISTIO_BOOTSTRAP_OVERRIDE", "")

#* --- Proxy Identity ---
SERVICE_CLUSTER = os.getenv("ENVOY_SERVICE_CLUSTER", "istio-proxy")
SERVICE_NODE = os.getenv("ENVOY_SERVICE_NODE", "sidecar~127.0.0.1~localhost.default~default.svc.cluster.local")
NODE_IPS = [ip.strip() for ip in os.getenv("INSTANCE_IPS", "").split(",") if ip.strip()]
POD_NAME = os.getenv("POD_NAME", "")
POD_NAMESPACE = os.getenv("POD_NAMESPACE", "")
POD_IP = os.getenv("INSTANCE_IP", "")

#* --- Proxy Runtime Settings ---
PROXY_ADMIN_PORT = int(os.getenv("ENVOY_ADMIN_PORT", "15000"))
DRAIN_DURATION = os.getenv("ENVOY_DRAIN_DURATION", "45s")
PARENT_SHUTDOWN_DURATION = os.getenv("ENVOY_PARENT_SHUTDOWN_DURATION", "60s")
STAT_NAME_LENGTH = int(os.getenv("ENVOY_STAT_NAME_LENGTH", "189"))
CONCURRENCY = int(os.getenv("ENVOY_CONCURRENCY", "2"))
DISCOVERY_ADDRESS = os.getenv("ENVOY_DISCOVERY_ADDRESS", "istio-pilot:15010")
DNS_REFRESH_RATE = os.getenv("DNS_REFRESH_RATE", "300s")

#* --- Security ---
SDS_UDS_PATH = os.getenv("SDS_UDS_PATH", "")
SDS_TOKEN_PATH = os.getenv("SDS_TOKEN_PATH", "")
CONTROL_PLANE_AUTH = os.getenv("CONTROL_PLANE_AUTH", "False").lower() in ('true', '1', 't')
DISABLE_REPORT_CALLS = os.getenv("DISABLE_REPORT_CALLS", "False").lower() in ('true', '1', 't')
PILOT_SUBJECT_ALT_NAME = [s for s in os.getenv("PILOT_SAN", "").split(",") if s]
MIXER_SUBJECT_ALT_NAME = [s for s in os.getenv("MIXER_SAN", "").split(",") if s]

#* --- Logging ---
PROXY_LOG_LEVEL = os.getenv("ENVOY_LOG_LEVEL", "")
PROXY_COMPONENT_LOG_LEVEL = os.getenv("ENVOY_COMPONENT_LOG_LEVEL", "")
LOG_FILE_PATH = os.getenv("ENVOY_AGENT_LOG_FILE", "")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3

#* --- Liveness ---
LIVENESS_PROBE_TIMEOUT = 1.0  # seconds
PROBE_POLL_INTERVAL = 1.0     # seconds

#* --- MODIFIABLE SETTINGS (Changeable through the overrides file) ---
MODIFIABLE_SETTINGS = {
    "DRAIN_DURATION", "PARENT_SHUTDOWN_DURATION",
    "PROXY_LOG_LEVEL", "PROXY_COMPONENT_LOG_LEVEL",
    "CONCURRENCY", "STAT_NAME_LENGTH",
    "CUSTOM_CONFIG_FILE", "LIVENESS_PROBE_TIMEOUT",
}
