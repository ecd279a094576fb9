# pyright: reportAny=false
from pathlib import Path

import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from fleetwarden.config import (
    CONFIG_FILENAME,
    Config,
    ConfigSourceName,
    LogFormat,
    LogLevel,
    safe_load_config,
)
from fleetwarden.exceptions import ConfigValidationError
from fleetwarden.supervisor import CheckProtocol, CriticalityTag

FLEET_TOML = """
[monitor]
interval = 2.0

[alerts.thresholds.cpu]
warning = 70.0
critical = 85.0

[[services]]
name = "db"
display_name = "Database"
check_protocol = "db"
endpoint = "db:5432"
criticality = "core"

[[services]]
name = "indexer"
check_protocol = "http"
endpoint = "http://indexer:8080"
dependencies = ["db"]
"""


@pytest.fixture
def fleet_file(fs: FakeFilesystem) -> Path:
    path = Path("/srv/fleet") / CONFIG_FILENAME
    fs.create_file(path, contents=FLEET_TOML)
    return path


class TestFromDict:
    def test_defaults(self) -> None:
        config = Config.from_dict({})

        assert config.monitor.interval == 5.0
        assert config.monitor.retry_attempts == 3
        assert config.controller.operation_timeout == 60.0
        assert config.server.port == 6380
        assert config.logging.level == LogLevel.INFO
        assert config.logging.format == LogFormat.JSON
        assert config.services == []

    def test_overrides_merge_over_defaults(self) -> None:
        config = Config.from_dict({"monitor": {"interval": 1.5}})

        assert config.monitor.interval == 1.5
        assert config.monitor.check_timeout == 5.0

    def test_service_definitions(self) -> None:
        config = Config.from_dict(
            {
                "services": [
                    {"name": "db", "check_protocol": "tcp", "endpoint": "db:5432"},
                    {
                        "name": "api",
                        "display_name": "API",
                        "check_protocol": "rpc",
                        "endpoint": "http://api:8545",
                        "criticality": "prod",
                        "dependencies": ["db"],
                    },
                ]
            }
        )

        db, api = config.services
        assert db.display_name == "db"
        assert db.check_protocol == CheckProtocol.TCP
        assert api.criticality == CriticalityTag.PROD
        assert api.dependencies == frozenset({"db"})
        assert config.build_graph().topological_order() == ["db", "api"]

    def test_thresholds_table(self) -> None:
        config = Config.from_dict(
            {"alerts": {"thresholds": {"disk": {"warning": 60, "critical": 70}}}}
        )

        table = config.alerts.thresholds.to_table()

        assert [(level.warning, level.critical) for level in table.values()] == [
            (80.0, 90.0),
            (85.0, 90.0),
            (60.0, 70.0),
            (8.0, 10.0),
        ]

    def test_backoff_from_monitor_section(self) -> None:
        config = Config.from_dict({"monitor": {"base_retry_delay": 0.5, "max_retry_delay": 2.0}})

        backoff = config.monitor.backoff()

        assert backoff.delay(0) == 0.5
        assert backoff.delay(5) == 2.0

    def test_get_dotted_key(self) -> None:
        config = Config.from_dict({})

        assert config.get("sources.disk_path") == "/"
        assert config.get("sources.missing", "fallback") == "fallback"
        assert config.get("monitor.interval.deeper") is None

    def test_to_dict_is_a_copy(self) -> None:
        config = Config.from_dict({})

        data = config.to_dict()
        data["monitor"]["interval"] = 99

        assert config.get("monitor.interval") == 5.0


class TestValidationErrors:
    def test_out_of_range_value(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict({"monitor": {"interval": 0}})

        assert exc_info.value.key == "monitor.interval"
        assert exc_info.value.value == 0

    def test_unknown_protocol(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict(
                {"services": [{"name": "x", "check_protocol": "smtp", "endpoint": "x:25"}]}
            )

        assert exc_info.value.key == "services.0.check_protocol"

    def test_unknown_dependency(self) -> None:
        with pytest.raises(ConfigValidationError, match="unknown service 'ghost'") as exc_info:
            _ = Config.from_dict(
                {
                    "services": [
                        {
                            "name": "api",
                            "check_protocol": "http",
                            "endpoint": "http://api",
                            "dependencies": ["ghost"],
                        }
                    ]
                }
            )

        assert exc_info.value.key == "services.dependencies"

    def test_dependency_cycle(self) -> None:
        services = [
            {"name": "a", "check_protocol": "tcp", "endpoint": "a:1", "dependencies": ["b"]},
            {"name": "b", "check_protocol": "tcp", "endpoint": "b:1", "dependencies": ["a"]},
        ]

        with pytest.raises(ConfigValidationError, match="Circular dependency"):
            _ = Config.from_dict({"services": services})

    def test_duplicate_service_names(self) -> None:
        services = [
            {"name": "a", "check_protocol": "tcp", "endpoint": "a:1"},
            {"name": "a", "check_protocol": "tcp", "endpoint": "a:2"},
        ]

        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict({"services": services})

        assert exc_info.value.key == "services.name"

    def test_warning_above_critical(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = Config.from_dict(
                {"alerts": {"thresholds": {"cpu": {"warning": 95, "critical": 90}}}}
            )

        assert exc_info.value.key == "alerts.thresholds.cpu"


class TestLoad:
    def test_reads_file_from_cwd(self, fleet_file: Path) -> None:
        config = Config.load(cwd=fleet_file.parent, include_env=False)

        assert config.monitor.interval == 2.0
        assert config.alerts.thresholds.cpu.warning == 70.0
        assert [s.name for s in config.services] == ["db", "indexer"]
        assert config.services[0].display_name == "Database"

    def test_missing_file_in_cwd_uses_defaults(self, fs: FakeFilesystem) -> None:
        fs.create_dir("/empty")

        config = Config.load(cwd=Path("/empty"), include_env=False)

        assert config.services == []
        file_source = next(s for s in config.sources if s.name == ConfigSourceName.FILE)
        assert file_source.exists is False

    def test_explicit_missing_path_raises(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        with pytest.raises(FileNotFoundError):
            _ = Config.load(config_path=Path("/nope.toml"))

    def test_precedence(self, fleet_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLEETWARDEN_MONITOR__INTERVAL", "3.0")
        monkeypatch.setenv("FLEETWARDEN_SERVER__PORT", "7000")

        config = Config.load(config_path=fleet_file, cli_overrides={"server": {"port": 7100}})

        assert config.monitor.interval == 3.0
        assert config.server.port == 7100
        assert [s.name for s in config.sources] == [
            ConfigSourceName.CLI,
            ConfigSourceName.ENV,
            ConfigSourceName.FILE,
            ConfigSourceName.DEFAULT,
        ]

    def test_from_file(self, fleet_file: Path) -> None:
        config = Config.from_file(fleet_file)

        assert len(config.services) == 2
        assert config.sources[0].path == fleet_file


class TestSafeLoadConfig:
    def test_success(self, fleet_file: Path) -> None:
        config, error = safe_load_config(config_path=fleet_file)

        assert error is None
        assert len(config.services) == 2

    def test_invalid_file_warns_and_falls_back(
        self, fs: FakeFilesystem, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = Path("/bad.toml")
        fs.create_file(path, contents="[monitor]\ninterval = -1\n")

        config, error = safe_load_config(config_path=path)

        assert error is not None
        assert "monitor.interval" in error
        assert config.monitor.interval == 5.0
        assert "Warning: Failed to load config" in capsys.readouterr().err

    def test_strict_mode_exits(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FLEETWARDEN_STRICT_CONFIG", "1")
        path = Path("/bad.toml")
        fs.create_file(path, contents="not = [valid\n")

        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(config_path=path)

        assert exc_info.value.code == 1

    def test_explicit_missing_path_exits(self, fs: FakeFilesystem) -> None:  # noqa: ARG002
        with pytest.raises(SystemExit):
            _ = safe_load_config(config_path=Path("/missing.toml"))
