import stat
from datetime import timedelta

import pytest

from envoy_agent.local.config import ProxyConfiguration


@pytest.fixture
def make_config(tmp_path):
    """Builds a ProxyConfiguration rooted in the test's temp directory."""
    def _make(**overrides):
        values = dict(
            binary_path=tmp_path / "envoy",
            config_dir=tmp_path / "conf",
            admin_port=15000,
            drain_duration=timedelta(seconds=45),
            parent_shutdown_duration=timedelta(seconds=60),
            service_cluster="istio-proxy",
            service_node="sidecar~10.0.0.1~reviews-v1.default~default.svc.cluster.local",
            stat_name_length=189,
            node_ips=("10.0.0.1",),
        )
        values.update(overrides)
        return ProxyConfiguration(**values)
    return _make


@pytest.fixture
def fake_envoy(tmp_path):
    """Writes an executable shell script standing in for the proxy binary."""
    def _write(body: str, name: str = "envoy"):
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path
    return _write
