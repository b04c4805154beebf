import pytest

import health
from health import CheckResult, HealthStatus


def _result(status):
    return CheckResult(status=status, latency_ms=1.0, message=status)


@pytest.mark.parametrize("database, cache, modules, expected", [
    ("pass", "pass", "pass", HealthStatus.HEALTHY),
    ("pass", "fail", "pass", HealthStatus.DEGRADED),
    ("pass", "pass", "fail", HealthStatus.DEGRADED),
    ("fail", "pass", "pass", HealthStatus.UNHEALTHY),
])
def test_detailed_health_status(monkeypatch, database, cache, modules, expected):
    monkeypatch.setattr(health, "check_database_connectivity", lambda *a, **k: _result(database))
    monkeypatch.setattr(health, "check_feature_cache", lambda: _result(cache))
    monkeypatch.setattr(health, "check_api_modules", lambda: _result(modules))

    body = health.get_detailed_health()

    assert body["status"] == expected.value
    assert body["app"] == health.APP_NAME
    assert set(body["checks"]) == {"database", "feature_cache", "api_modules"}


def test_public_health_only_reports_status(monkeypatch):
    monkeypatch.setattr(health, "check_database_connectivity", lambda *a, **k: _result("pass"))

    body = health.get_public_health()

    assert set(body) == {"status", "timestamp"}
    assert body["status"] == "healthy"


def test_missing_feature_table_fails_the_cache_check(fake_db):
    fake_db.respond("information_schema", [{"exists": False}])

    result = health.check_feature_cache()

    assert result.status == "fail"
    assert result.details["exists"] is False
