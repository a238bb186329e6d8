import json
import logging

import pytest
from fastapi import HTTPException

from reallocation_planner.api.config import (
    DEFAULT_MAX_SOURCING_VAULTS,
    env_flag,
    live_reads_enabled,
    max_sourcing_vaults,
)
from reallocation_planner.api.http_status import (
    HTTP_422_UNPROCESSABLE,
    raise_planning_http_exception,
)
from reallocation_planner.api.observability import JsonFormatter, _trace_id_from
from reallocation_planner.core.models import PlanningPreconditionError


def test_live_reads_flag_defaults_on_and_can_be_disabled(monkeypatch):
    assert live_reads_enabled() is True
    monkeypatch.setenv("REALLOCATION_LIVE_READS_ENABLED", "false")
    assert live_reads_enabled() is False
    monkeypatch.setenv("REALLOCATION_LIVE_READS_ENABLED", "YES")
    assert live_reads_enabled() is True


def test_env_flag_default_when_unset(monkeypatch):
    monkeypatch.delenv("REALLOCATION_TEST_FLAG", raising=False)
    assert env_flag("REALLOCATION_TEST_FLAG", False) is False


@pytest.mark.parametrize("raw,expected", [("3", 3), ("0", 50), ("-2", 50), ("many", 50)])
def test_max_sourcing_vaults_parses_positive_integers(monkeypatch, raw, expected):
    assert max_sourcing_vaults() == DEFAULT_MAX_SOURCING_VAULTS
    monkeypatch.setenv("REALLOCATION_MAX_SOURCING_VAULTS", raw)
    assert max_sourcing_vaults() == expected


def test_planning_errors_map_to_422():
    with pytest.raises(HTTPException) as exc_info:
        raise_planning_http_exception(PlanningPreconditionError("bad amount"))
    assert exc_info.value.status_code == HTTP_422_UNPROCESSABLE == 422
    assert exc_info.value.detail == "bad amount"


def test_other_errors_are_re_raised():
    with pytest.raises(RuntimeError):
        raise_planning_http_exception(RuntimeError("boom"))


def test_json_formatter_emits_service_fields_and_extras(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "planner-test")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.extra_fields = {"endpoint": "/health"}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["service"] == "planner-test"
    assert payload["message"] == "hello world"
    assert payload["endpoint"] == "/health"
    assert "correlation_id" not in payload


def test_trace_id_from_malformed_traceparent_is_generated():
    assert _trace_id_from("00-" + "ab" * 16 + "-01-01") == "ab" * 16
    generated = _trace_id_from("garbage")
    assert len(generated) == 32
