import json
import logging
from datetime import timedelta
from pathlib import Path

import pytest

from envoy_agent import settings
from envoy_agent.local.config import MergedSettings, build_proxy_config
from envoy_agent.local.durations import convert_duration, parse_duration, parse_nanoseconds, whole_seconds


class TestMergedSettings:

    def test_defaults_without_overrides_file(self, tmp_path):
        s = MergedSettings(overrides_path=tmp_path / "missing.json")

        assert s.EPOCH_FILE_TEMPLATE == "envoy-rev{epoch}.json"
        assert s.OVERRIDES_JSON_PATH == tmp_path / "missing.json"

    def test_modifiable_overrides_are_applied_and_coerced(self, tmp_path):
        overrides = tmp_path / "overrides.json"
        overrides.write_text(json.dumps({"CONCURRENCY": "4", "DRAIN_DURATION": "5s", "PROXY_LOG_LEVEL": "debug"}))

        s = MergedSettings(overrides_path=overrides)

        assert s.CONCURRENCY == 4
        assert s.DRAIN_DURATION == "5s"
        assert s.PROXY_LOG_LEVEL == "debug"

    def test_non_modifiable_and_unknown_keys_are_ignored(self, tmp_path, caplog):
        overrides = tmp_path / "overrides.json"
        overrides.write_text(json.dumps({"BINARY_PATH": "/tmp/evil", "NOT_A_SETTING": 1}))

        with caplog.at_level(logging.WARNING):
            s = MergedSettings(overrides_path=overrides)

        assert s.BINARY_PATH != Path("/tmp/evil")
        assert "non-modifiable setting 'BINARY_PATH'" in caplog.text
        assert "'NOT_A_SETTING' not found" in caplog.text

    def test_malformed_overrides_file_is_logged(self, tmp_path, caplog):
        overrides = tmp_path / "overrides.json"
        overrides.write_text("{not json")

        with caplog.at_level(logging.ERROR):
            s = MergedSettings(overrides_path=overrides)

        assert "Failed to load or parse overrides file" in caplog.text
        assert s.CONCURRENCY == settings.CONCURRENCY


def test_build_proxy_config(tmp_path):
    overrides = tmp_path / "overrides.json"
    overrides.write_text(json.dumps({"DRAIN_DURATION": "2500ms", "CONCURRENCY": 0}))
    s = MergedSettings(overrides_path=overrides)
    s.NODE_IPS = ["10.0.0.1"]
    s.BOOTSTRAP_OVERRIDE_PATH = "/etc/istio/custom-bootstrap.yaml"

    config = build_proxy_config(s)

    assert config.drain_duration == timedelta(milliseconds=2500)
    assert config.concurrency == 0
    assert config.node_ips == ("10.0.0.1",)
    assert config.bootstrap_override_path == "/etc/istio/custom-bootstrap.yaml"
    with pytest.raises(AttributeError):
        config.admin_port = 1


class TestDurations:

    @pytest.mark.parametrize("text,seconds", [
        ("45s", 45.0),
        ("2500ms", 2.5),
        ("1m30s", 90.0),
        ("1h", 3600.0),
        ("1.5s", 1.5),
        ("10", 10.0),
        ("-2s", -2.0),
    ])
    def test_parse_duration(self, text, seconds):
        assert parse_duration(text).total_seconds() == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "s", "10x", "5s garbage", "1m-3s"])
    def test_parse_duration_rejects_garbage(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    def test_convert_duration_falls_back_to_zero(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert convert_duration("forever") == timedelta(0)
        assert "using 0" in caplog.text

    def test_whole_seconds_truncates(self):
        assert whole_seconds(timedelta(milliseconds=2500)) == 2
        assert whole_seconds(2.999) == 2
        assert whole_seconds(None) == 0
        assert whole_seconds("-1500ms") == -1

    @pytest.mark.parametrize("text,nanoseconds", [
        ("2999999999ns", 2_999_999_999),
        ("1.5us", 1_500),
        ("59.9999999", 59_999_999_900),
        ("-1m0.5s", -60_500_000_000),
    ])
    def test_parse_nanoseconds_is_exact(self, text, nanoseconds):
        assert parse_nanoseconds(text) == nanoseconds

    def test_convert_duration_truncates_below_a_microsecond(self):
        assert convert_duration("2999999999ns") == timedelta(microseconds=2_999_999)
        assert convert_duration(59.9999999) == timedelta(microseconds=59_999_999)
        assert whole_seconds(convert_duration("2999999999ns")) == 2

    @pytest.mark.parametrize("value", ["inf", "nan", "1e3s"])
    def test_non_finite_or_exponent_strings_are_rejected(self, value, caplog):
        with caplog.at_level(logging.WARNING):
            assert whole_seconds(value) == 0
        assert "using 0" in caplog.text
