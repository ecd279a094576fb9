"""Unit tests for the bounded alert history."""

from fleetwarden.alerts import Alert, AlertHistory, AlertType, Priority, Severity


def make_alert(
    alert_id: str,
    *,
    severity: Severity = Severity.INFO,
    source: str = "api",
    alert_type: AlertType = AlertType.SERVICE_FAILURE,
) -> Alert:
    return Alert(
        id=alert_id,
        type=alert_type,
        severity=severity,
        priority=Priority.LOW,
        title=alert_id,
        message="",
        source=source,
        timestamp="2024-01-01T00:00:00Z",
    )


class TestAlertHistory:
    def test_newest_first(self) -> None:
        history = AlertHistory()
        for alert_id in ("a", "b", "c"):
            history.append(make_alert(alert_id))

        assert [a.id for a in history] == ["c", "b", "a"]

    def test_evicts_oldest_at_capacity(self) -> None:
        history = AlertHistory(maxlen=3)
        for i in range(5):
            history.append(make_alert(f"a{i}"))

        assert len(history) == 3
        assert history.maxlen == 3
        assert [a.id for a in history] == ["a4", "a3", "a2"]
        assert history.find("a0") is None

    def test_find(self) -> None:
        history = AlertHistory()
        alert = make_alert("x")
        history.append(alert)

        assert history.find("x") is alert
        assert history.find("y") is None

    def test_query_combines_filters(self) -> None:
        history = AlertHistory()
        history.append(make_alert("1", severity=Severity.CRITICAL, source="db"))
        history.append(make_alert("2", severity=Severity.CRITICAL, source="api"))
        history.append(make_alert("3", severity=Severity.WARNING, source="db"))

        matches = history.query(severity=Severity.CRITICAL, source="db")

        assert [a.id for a in matches] == ["1"]

    def test_query_by_type(self) -> None:
        history = AlertHistory()
        history.append(make_alert("1", alert_type=AlertType.SYNC_LOST))
        history.append(make_alert("2"))

        assert [a.id for a in history.query(alert_type="sync_lost")] == ["1"]

    def test_limit_applies_after_filtering(self) -> None:
        history = AlertHistory()
        for i in range(4):
            history.append(make_alert(str(i), source="db" if i % 2 else "api"))

        assert [a.id for a in history.query(source="db", limit=1)] == ["3"]

    def test_clear(self) -> None:
        history = AlertHistory()
        history.append(make_alert("a"))

        history.clear()

        assert len(history) == 0
