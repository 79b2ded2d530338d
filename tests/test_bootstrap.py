import json
from pathlib import Path

import pytest

from envoy_agent.local.supervisor.bootstrap import BootstrapWriter
from envoy_agent.local.supervisor.errors import ConfigGenerationError


def test_writes_json_bootstrap_named_by_epoch(make_config):
    config = make_config(discovery_address="istio-pilot.istio-system:15010", dns_refresh_rate="300s")
    writer = BootstrapWriter(config, environ={})

    path = writer.create_file_for_epoch(2)

    assert path.name == "envoy-rev2.json"
    document = json.loads(path.read_text())
    assert document["node"]["id"] == config.service_node
    assert document["node"]["cluster"] == "istio-proxy"
    assert document["admin"]["address"]["socket_address"]["port_value"] == 15000
    cluster = document["static_resources"]["clusters"][0]
    assert cluster["hosts"][0]["socket_address"] == {"address": "istio-pilot.istio-system", "port_value": 15010}
    assert cluster["dns_refresh_rate"] == "300s"
    assert not list(config.config_dir.glob("*.tmp"))


def test_node_metadata_from_environment_and_pod(make_config):
    config = make_config(pod_name="reviews-v1-abc", pod_namespace="default",
                         node_ips=("10.0.0.1", "fd00::1"), disable_report_calls=True)
    writer = BootstrapWriter(config, environ={"ISTIO_META_CLUSTER_ID": "Kubernetes", "HOME": "/root"})

    meta = writer.node_metadata()

    assert meta == {
        "CLUSTER_ID": "Kubernetes",
        "POD_NAME": "reviews-v1-abc",
        "POD_NAMESPACE": "default",
        "INSTANCE_IPS": "10.0.0.1,fd00::1",
        "DISABLE_REPORT_CALLS": "true",
    }


def test_control_plane_auth_adds_tls_context(make_config):
    config = make_config(discovery_address="pilot:15011", control_plane_auth=True,
                         pilot_subject_alt_names=("spiffe://cluster.local/ns/istio-system/sa/pilot",))

    cluster = BootstrapWriter(config, environ={}).render()["static_resources"]["clusters"][0]

    validation = cluster["tls_context"]["common_tls_context"]["validation_context"]
    assert validation["verify_subject_alt_name"] == ["spiffe://cluster.local/ns/istio-system/sa/pilot"]


def test_unwritable_directory_raises_config_generation_error(make_config, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    writer = BootstrapWriter(make_config(config_dir=blocker / "conf"), environ={})

    with pytest.raises(ConfigGenerationError):
        writer.create_file_for_epoch(0)


def test_bad_discovery_port_raises_config_generation_error(make_config):
    writer = BootstrapWriter(make_config(discovery_address="pilot:grpc"), environ={})

    with pytest.raises(ConfigGenerationError):
        writer.create_file_for_epoch(0)


def test_failed_rename_removes_temp_file(make_config, monkeypatch):
    config = make_config()

    def _replace(self, target):
        raise PermissionError(13, "Permission denied", str(target))

    monkeypatch.setattr(Path, "replace", _replace)

    with pytest.raises(ConfigGenerationError, match="Permission denied"):
        BootstrapWriter(config, environ={}).create_file_for_epoch(1)

    assert not list(config.config_dir.glob("*.tmp"))


def test_temp_file_cleanup_error_does_not_mask_generation_error(make_config, monkeypatch):
    def _replace(self, target):
        raise PermissionError(13, "Permission denied", str(target))

    def _unlink(self, *args, **kwargs):
        raise OSError(16, "Device or resource busy", str(self))

    monkeypatch.setattr(Path, "replace", _replace)
    monkeypatch.setattr(Path, "unlink", _unlink)

    with pytest.raises(ConfigGenerationError, match="Permission denied") as exc_info:
        BootstrapWriter(make_config(), environ={}).create_file_for_epoch(1)

    assert isinstance(exc_info.value.__cause__, PermissionError)
