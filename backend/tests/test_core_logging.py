"""
Tests for peopledesk/core/logging_config.py
"""
import json
import logging

from peopledesk.core.logging_config import ColoredFormatter, JSONFormatter, get_logger


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("peopledesk.test", logging.WARNING, __file__, 10, "Refused %s", ("delete",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_json_promotes_context(self):
        output = json.loads(JSONFormatter().format(_record(identity_id="e-1", collection="employees", attempt=2)))

        assert output["message"] == "Refused delete"
        assert output["level"] == "WARNING"
        assert output["identity_id"] == "e-1"
        assert output["collection"] == "employees"
        assert output["extra"] == {"attempt": 2}

    def test_json_without_extras(self):
        output = json.loads(JSONFormatter(service_name="svc").format(_record()))

        assert output["service"] == "svc"
        assert "extra" not in output
        assert "identity_id" not in output

    def test_colored_appends_context(self):
        output = ColoredFormatter().format(_record(identity_id="e-1", step="employee"))

        assert "Refused delete [identity_id=e-1 step=employee]" in output


class TestContextLogger:

    def test_bound_context_reaches_records(self, caplog):
        log = get_logger("peopledesk.test").bind(identity_id="e-1")
        child = log.bind(collection="leave_requests")

        with caplog.at_level(logging.INFO, logger="peopledesk.test"):
            child.info("Re-querying", extra={"step": "load"})

        record = caplog.records[-1]
        assert record.identity_id == "e-1"
        assert record.collection == "leave_requests"
        assert record.step == "load"
        assert log.context == {"identity_id": "e-1"}
