import pytest

from fleetwarden.config import ConfigSchema, ValidationIssue, validate_config
from fleetwarden.config._validation import raise_if_validation_errors
from fleetwarden.exceptions import ConfigValidationError


def _service(name: str, *deps: str) -> dict[str, object]:
    return {"name": name, "check_protocol": "tcp", "endpoint": f"{name}:1", "dependencies": deps}


class TestValidateConfig:
    def test_empty_config_is_valid(self) -> None:
        schema, issues = validate_config({})

        assert isinstance(schema, ConfigSchema)
        assert issues == []

    def test_unknown_keys_are_ignored(self) -> None:
        schema, issues = validate_config({"monitor": {"interval": 1.0, "colour": "blue"}})

        assert schema is not None
        assert issues == []

    def test_type_errors_become_issues(self) -> None:
        schema, issues = validate_config(
            {"server": {"port": 70000}, "monitor": {"retry_attempts": 0}}
        )

        assert schema is None
        assert {i.key for i in issues} == {"server.port", "monitor.retry_attempts"}
        assert all(i.severity == "error" for i in issues)

    def test_invalid_service_name(self) -> None:
        _, issues = validate_config({"services": [_service("-bad")]})

        [issue] = issues
        assert issue.key == "services.0.name"
        assert issue.expected is not None
        assert issue.expected.startswith("pattern:")

    def test_graph_issue_for_unknown_dependency(self) -> None:
        schema, issues = validate_config({"services": [_service("api", "db")]})

        assert schema is not None
        [issue] = issues
        assert issue.key == "services.dependencies"
        assert issue.actual == "db"

    def test_graph_issue_for_cycle(self) -> None:
        _, issues = validate_config(
            {"services": [_service("a", "c"), _service("b", "a"), _service("c", "b")]}
        )

        [issue] = issues
        assert issue.expected == "an acyclic dependency graph"
        assert sorted(issue.actual) == ["a", "b", "c"]

    def test_valid_graph(self) -> None:
        schema, issues = validate_config(
            {"services": [_service("db"), _service("indexer", "db"), _service("app", "indexer")]}
        )

        assert issues == []
        assert schema is not None
        assert [s.name for s in schema.services] == ["db", "indexer", "app"]


class TestRaiseIfValidationErrors:
    def test_no_errors(self) -> None:
        raise_if_validation_errors([])

    def test_warnings_do_not_raise(self) -> None:
        issue = ValidationIssue(
            key="k", message="m", expected=None, actual=None, severity="warning"
        )

        raise_if_validation_errors([issue])

    def test_raises_first_error(self) -> None:
        issues = [
            ValidationIssue(key="monitor.interval", message="too small", expected="> 0", actual=0),
            ValidationIssue(key="server.port", message="too big", expected=None, actual=1),
        ]

        with pytest.raises(ConfigValidationError) as exc_info:
            raise_if_validation_errors(issues, source="/etc/fleetwarden.toml")

        error = exc_info.value
        assert error.key == "monitor.interval"
        assert error.expected == "> 0"
        assert error.source == "/etc/fleetwarden.toml"
        assert "too small" in str(error)
