"""
Test bootstrap config resolution

Tests:
- Generated files are keyed deterministically by epoch
- Drain always wins and uses the fixed drain file
- A custom config file is used as-is and never generated
- Generator failures surface as ConfigGenerationError
"""

from pathlib import Path

import pytest

from envoy_agent import settings
from envoy_agent.local.supervisor.bootstrap import BootstrapWriter
from envoy_agent.local.supervisor.config_resolver import (
    CustomOverride, Drain, Generated, config_file, resolve_config_path, select_variant,
)
from envoy_agent.local.supervisor.errors import ConfigGenerationError


class RecordingWriter:
    def __init__(self, config_dir):
        self.config_dir = config_dir
        self.epochs = []

    def create_file_for_epoch(self, epoch):
        self.epochs.append(epoch)
        return config_file(self.config_dir, epoch)


class BrokenWriter:
    def create_file_for_epoch(self, epoch):
        raise PermissionError("read-only file system")


class TestSelectVariant:

    def test_generated_by_default(self, make_config):
        assert select_variant(make_config(), 7, drain=False) == Generated(7)

    def test_custom_file_wins_over_generated(self, make_config):
        config = make_config(custom_config_file="/etc/envoy/custom.yaml")
        assert select_variant(config, 7, drain=False) == CustomOverride("/etc/envoy/custom.yaml")

    def test_drain_wins_over_everything(self, make_config):
        config = make_config(custom_config_file="/etc/envoy/custom.yaml")
        assert select_variant(config, 7, drain=True) == Drain()


class TestResolveConfigPath:

    @pytest.mark.parametrize("epoch", [0, 1, 42])
    def test_generated_path_is_deterministic(self, tmp_path, epoch):
        writer = RecordingWriter(tmp_path)

        first = resolve_config_path(Generated(epoch), writer)
        second = resolve_config_path(Generated(epoch), writer)

        assert first == second == tmp_path / f"envoy-rev{epoch}.json"
        assert writer.epochs == [epoch, epoch]

    def test_generated_writes_real_file(self, make_config):
        config = make_config()

        path = resolve_config_path(Generated(5), BootstrapWriter(config, environ={}))

        assert path == config.config_dir / "envoy-rev5.json"
        assert path.exists()

    def test_drain_uses_fixed_path(self, tmp_path):
        writer = RecordingWriter(tmp_path)

        assert resolve_config_path(Drain(), writer) == Path(settings.DRAIN_FILE_PATH)
        assert resolve_config_path(Drain(), writer, drain_path=tmp_path / "drain.json") == tmp_path / "drain.json"
        assert writer.epochs == []

    def test_custom_override_is_not_generated(self, tmp_path):
        writer = RecordingWriter(tmp_path)

        path = resolve_config_path(CustomOverride("/etc/envoy/custom.yaml"), writer)

        assert path == Path("/etc/envoy/custom.yaml")
        assert writer.epochs == []

    def test_generator_failure_is_config_generation_error(self):
        with pytest.raises(ConfigGenerationError) as exc_info:
            resolve_config_path(Generated(1), BrokenWriter())

        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_unknown_variant_is_rejected(self, tmp_path):
        with pytest.raises(TypeError):
            resolve_config_path("drain", RecordingWriter(tmp_path))
