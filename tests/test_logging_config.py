import json
import logging

from roof_estimate_engine.logging_config import StructuredFormatter, get_trace_id, set_trace_id


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="roof_estimate_engine.calculator",
        level=logging.WARNING,
        pathname=__file__,
        lineno=12,
        msg="Formula evaluation failed, keeping stored quantity",
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_includes_extra_fields():
    payload = json.loads(StructuredFormatter().format(make_record(item_id="eli_1", formula="EAVE/0")))

    assert payload["severity"] == "WARNING"
    assert payload["message"] == "Formula evaluation failed, keeping stored quantity"
    assert payload["logger"] == "roof_estimate_engine.calculator"
    assert payload["item_id"] == "eli_1"
    assert payload["formula"] == "EAVE/0"
    assert "args" not in payload
    assert payload["timestamp"].endswith("+00:00")


def test_trace_id_is_attached():
    set_trace_id("projects/demo/traces/abc123")
    try:
        payload = json.loads(StructuredFormatter().format(make_record()))
        assert get_trace_id() == "projects/demo/traces/abc123"
        assert payload["logging.googleapis.com/trace"] == "projects/demo/traces/abc123"
    finally:
        set_trace_id(None)
