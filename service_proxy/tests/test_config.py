"""
Unit tests for configuration loading.
"""

import os
from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from shared.config import (
    CacheSettings,
    ConfigError,
    ProxyConfig,
    format_duration,
    load_config,
    parse_duration,
)


CONFIG_YAML = """
server:
  port: 9090
  host: 127.0.0.1
artifacthub:
  base_url: https://artifacthub.example
  timeout: 10s
  max_retries: 5
  cache:
    ttl: 10m
    max_size: 50
catalog_mappings:
  - tekton_hub: tekton
    artifact_hub: tekton-catalog-tasks
  - tekton_hub: openshift
    artifact_hub: redhat-tekton-tasks
logging:
  level: debug
  format: text
landing_page:
  enabled: false
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run each test in an empty directory without THP_ variables."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.upper().startswith("THP_"):
            monkeypatch.delenv(name)
    return tmp_path


class TestDurations:
    """Duration parsing and formatting."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("30s", timedelta(seconds=30)),
            ("5m", timedelta(minutes=5)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("1.5s", timedelta(seconds=1.5)),
            ("250ms", timedelta(milliseconds=250)),
            ("45", timedelta(seconds=45)),
            (12, timedelta(seconds=12)),
            (timedelta(minutes=2), timedelta(minutes=2)),
        ],
    )
    def test_parse_duration(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "5x", "5m garbage", "m5"])
    def test_parse_duration_rejects(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    @pytest.mark.parametrize(
        "value, expected",
        [
            (timedelta(minutes=5), "5m0s"),
            (timedelta(seconds=30), "30s"),
            (timedelta(hours=1, minutes=30), "1h30m0s"),
        ],
    )
    def test_format_duration(self, value, expected):
        assert format_duration(value) == expected


class TestProxyConfig:
    """Defaults, file values and environment overrides."""

    def test_defaults(self):
        config = load_config()

        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.artifacthub.base_url == "https://artifacthub.io"
        assert config.artifacthub.timeout == timedelta(seconds=30)
        assert config.artifacthub.max_retries == 3
        assert config.artifacthub.retry_backoff == timedelta(seconds=1)
        assert config.artifacthub.cache.enabled is True
        assert config.artifacthub.cache.ttl == timedelta(minutes=5)
        assert config.artifacthub.cache.max_size == 1000
        assert [(m.tekton_hub, m.artifact_hub) for m in config.catalog_mappings] == [
            ("tekton", "tekton-catalog-tasks")
        ]
        assert config.logging.level == "info"
        assert config.logging.format == "json"
        assert config.landing_page.enabled is True

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "proxy.yaml"
        path.write_text(CONFIG_YAML)

        config = load_config(path)

        assert config.server.port == 9090
        assert config.server.host == "127.0.0.1"
        assert config.artifacthub.timeout == timedelta(seconds=10)
        assert config.artifacthub.max_retries == 5
        assert config.artifacthub.cache.ttl == timedelta(minutes=10)
        assert config.artifacthub.cache.max_size == 50
        assert len(config.catalog_mappings) == 2
        assert config.logging.format == "text"
        assert config.landing_page.enabled is False

    def test_default_locations_are_searched(self, tmp_path):
        (tmp_path / "configs").mkdir()
        (tmp_path / "configs" / "config.yaml").write_text("server:\n  port: 7000\n")
        (tmp_path / "config.yaml").write_text("server:\n  port: 7001\n")

        assert load_config().server.port == 7000

    def test_root_config_used_when_configs_dir_missing(self, tmp_path):
        (tmp_path / "config.yaml").write_text("server:\n  port: 7001\n")

        assert load_config().server.port == 7001

    def test_missing_explicit_file_is_an_error(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")

    def test_malformed_yaml_is_an_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("server: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping_yaml_is_an_error(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "proxy.yaml"
        path.write_text(CONFIG_YAML)
        monkeypatch.setenv("THP_SERVER__PORT", "9999")
        monkeypatch.setenv("THP_ARTIFACTHUB__CACHE__TTL", "1h")

        config = load_config(path)

        assert config.server.port == 9999
        assert config.artifacthub.cache.ttl == timedelta(hours=1)
        assert config.artifacthub.cache.max_size == 50
        assert config.server.host == "127.0.0.1"

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "bad-values.yaml"
        path.write_text("artifacthub:\n  max_retries: -1\n")

        with pytest.raises(PydanticValidationError):
            load_config(path)

    @pytest.mark.parametrize("ttl", ["0s", "-5", "soon"])
    def test_cache_ttl_must_be_positive_duration(self, ttl):
        with pytest.raises(PydanticValidationError):
            CacheSettings(ttl=ttl)

    def test_cache_max_size_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            CacheSettings(max_size=0)

    def test_direct_construction(self):
        config = ProxyConfig(server={"port": 1234})

        assert config.server.port == 1234
