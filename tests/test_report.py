"""Tests for run summary and output formatting."""

import json
from datetime import timedelta

from replayer.metrics import percentile, summarize
from replayer.models import Outcome, OutcomeKind, ResponseInfo, schedule_for
from replayer.report import (
    format_outcome_json,
    format_outcome_text,
    format_summary_json,
    format_summary_text,
    get_formatters,
)

from conftest import make_record


def _outcome(index, kind, status=None, elapsed=0.0, error=None):
    task = schedule_for(index, make_record(url=f"https://x.test/{index}"), timedelta(0))
    response = ResponseInfo(status, "OK" if status == 200 else "", "HTTP/1.1", elapsed) if status else None
    return Outcome.for_task(task, kind, response=response, error=error)


def _mixed():
    return [
        _outcome(0, OutcomeKind.RESPONSE, 200, 10.0),
        _outcome(1, OutcomeKind.RESPONSE, 200, 20.0),
        _outcome(2, OutcomeKind.RESPONSE, 500, 30.0),
        _outcome(3, OutcomeKind.DEADLINE_ELAPSED, error="too late"),
        _outcome(4, OutcomeKind.TRANSPORT_ERROR, error="ConnectError: refused"),
        _outcome(5, OutcomeKind.CANCELLED, error="replay cancelled"),
    ]


class TestPercentile:
    def test_empty(self):
        assert percentile([], 50) == 0.0

    def test_single(self):
        assert percentile([4.0], 99) == 4.0

    def test_interpolates(self):
        assert percentile([10.0, 20.0, 30.0], 50) == 20.0
        assert percentile([10.0, 20.0], 50) == 15.0


class TestSummarize:
    def test_counts(self):
        s = summarize(_mixed())
        assert s["total"] == 6
        assert s["responses"] == 3
        assert s["deadline_elapsed"] == 1
        assert s["transport_errors"] == 1
        assert s["cancelled"] == 1
        assert s["failures"] == 3
        assert s["status_counts"] == {"200": 2, "500": 1}

    def test_latency(self):
        s = summarize(_mixed())
        assert s["latency_avg_ms"] == 20.0
        assert s["latency_min_ms"] == 10.0
        assert s["latency_max_ms"] == 30.0
        assert s["latency_p50_ms"] == 20.0

    def test_no_responses(self):
        s = summarize([_outcome(0, OutcomeKind.DEADLINE_ELAPSED, error="x")])
        assert s["failures"] == 1
        assert s["latency_avg_ms"] == 0.0
        assert s["status_counts"] == {}

    def test_empty(self):
        s = summarize([])
        assert s["total"] == 0
        assert s["failures"] == 0


class TestFormatters:
    def test_text_response(self):
        line = format_outcome_text(_outcome(0, OutcomeKind.RESPONSE, 200, 12.34))
        assert line.startswith("[0] 2024-01-01 00:00:00.000 GET https://x.test/0")
        assert "-> 200 OK (12.3ms)" in line

    def test_text_failure(self):
        line = format_outcome_text(_outcome(3, OutcomeKind.DEADLINE_ELAPSED, error="too late"))
        assert line.endswith("-> DEADLINE_ELAPSED: too late")

    def test_json_outcome(self):
        parsed = json.loads(format_outcome_json(_outcome(4, OutcomeKind.TRANSPORT_ERROR, error="boom")))
        assert parsed["index"] == 4
        assert parsed["kind"] == "transport_error"
        assert parsed["ok"] is False

    def test_summary_text(self):
        text = format_summary_text(summarize(_mixed()))
        assert "REPLAY RESULTS" in text
        assert "Total Requests:    6" in text
        assert "Cancelled:         1" in text
        assert "500  1" in text
        assert "Latency P95" in text

    def test_summary_text_without_responses_skips_latency(self):
        text = format_summary_text(summarize([_outcome(0, OutcomeKind.CANCELLED, error="x")]))
        assert "Latency" not in text

    def test_summary_json(self):
        parsed = json.loads(format_summary_json(summarize(_mixed())))
        assert parsed["summary"]["total"] == 6

    def test_get_formatters(self):
        assert get_formatters("json") == (format_outcome_json, format_summary_json)
        assert get_formatters("text") == (format_outcome_text, format_summary_text)
