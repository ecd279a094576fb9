# pyright: reportAny=false, reportUnknownArgumentType=false
import copy
from pathlib import Path

import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from fleetwarden.config import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from fleetwarden.exceptions import ConfigLoadError


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: FakeFilesystem) -> None:
        content = """
[monitor]
interval = 10.0

[[services]]
name = "db"
check_protocol = "db"
endpoint = "db:5432"
"""
        path = Path("/etc/fleetwarden/fleetwarden.toml")
        fs.create_file(path, contents=content)

        result = read_toml_file(path)

        assert result["monitor"] == {"interval": 10.0}
        assert result["services"][0]["name"] == "db"

    def test_raises_file_not_found_for_missing_file(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        with pytest.raises(FileNotFoundError):
            _ = read_toml_file(Path("/missing.toml"))

    def test_raises_config_load_error_for_invalid_toml(self, fs: FakeFilesystem) -> None:
        path = Path("/invalid.toml")
        fs.create_file(path, contents="[monitor\ninterval = 1\n")

        with pytest.raises(ConfigLoadError) as exc_info:
            _ = read_toml_file(path)

        assert exc_info.value.path == path
        assert "/invalid.toml" in str(exc_info.value)


class TestDeepMerge:
    def test_merges_nested_tables(self) -> None:
        base = {"monitor": {"interval": 5.0, "retry_attempts": 3}}
        override = {"monitor": {"interval": 10.0}}

        assert deep_merge(base, override) == {"monitor": {"interval": 10.0, "retry_attempts": 3}}

    def test_replaces_arrays(self) -> None:
        base = {"services": [{"name": "a"}, {"name": "b"}]}
        override = {"services": [{"name": "c"}]}

        assert deep_merge(base, override) == {"services": [{"name": "c"}]}

    def test_does_not_modify_inputs(self) -> None:
        base = {"alerts": {"thresholds": {"cpu": {"warning": 80.0}}}}
        override = {"alerts": {"thresholds": {"cpu": {"warning": 70.0}}}}
        base_copy = copy.deepcopy(base)
        override_copy = copy.deepcopy(override)

        result = deep_merge(base, override)
        result["alerts"]["thresholds"]["cpu"]["warning"] = 1.0

        assert base == base_copy
        assert override == override_copy

    def test_scalar_replaces_table(self) -> None:
        assert deep_merge({"server": {"port": 1}}, {"server": "off"}) == {"server": "off"}


class TestSetNestedKey:
    def test_creates_intermediate_tables(self) -> None:
        d: dict[str, object] = {}

        set_nested_key(d, "alerts.thresholds.cpu", 70)

        assert d == {"alerts": {"thresholds": {"cpu": 70}}}

    def test_replaces_non_table_parent(self) -> None:
        d: dict[str, object] = {"monitor": 1}

        set_nested_key(d, "monitor.interval", 2)

        assert d == {"monitor": {"interval": 2}}


class TestParseStringValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("6380", 6380),
            ("-3", -3),
            ("2.5", 2.5),
            ('["db", "indexer"]', ["db", "indexer"]),
            ('{"warning": 70}', {"warning": 70}),
            ("127.0.0.1", "127.0.0.1"),
            ("[not json", "[not json"),
            ("docker", "docker"),
        ],
    )
    def test_infers_type(self, raw: str, expected: object) -> None:
        assert parse_string_value(raw) == expected


class TestParseEnvVars:
    def test_double_underscore_nests(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLEETWARDEN_MONITOR__INTERVAL", "10")
        monkeypatch.setenv("FLEETWARDEN_SERVER__ENABLED", "false")

        result = parse_env_vars()

        assert result["monitor"] == {"interval": 10}
        assert result["server"] == {"enabled": False}

    def test_ignores_other_prefixes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTHER_MONITOR__INTERVAL", "10")

        assert "monitor" not in parse_env_vars()

    @pytest.mark.parametrize("key", ["DEBUG", "LOG_LEVEL", "STRICT_CONFIG"])
    def test_skips_reserved_keys(self, monkeypatch: pytest.MonkeyPatch, key: str) -> None:
        monkeypatch.setenv(f"FLEETWARDEN_{key}", "1")

        assert key.lower() not in parse_env_vars()

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FW_TEST_RUNTIME__DOCKER_BINARY", "podman")

        assert parse_env_vars("FW_TEST_") == {"runtime": {"docker_binary": "podman"}}
