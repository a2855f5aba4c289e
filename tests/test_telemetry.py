"""
Tests for retrieval telemetry logging and the windowed summary.
"""

import json

import pytest

from telemetry import append_retrieval_telemetry, read_retrieval_telemetry_summary


@pytest.fixture()
def log_path(tmp_path, monkeypatch):
    path = tmp_path / "retrieval_telemetry.log"
    monkeypatch.setenv("RETRIEVAL_TELEMETRY_ENABLED", "1")
    monkeypatch.setenv("RETRIEVAL_TELEMETRY_LOG", str(path))
    return path


class TestTelemetry:
    def test_events_are_appended_as_json_lines(self, log_path):
        append_retrieval_telemetry("match", {"query": "หอพัก"})
        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        item = json.loads(lines[0])
        assert item["event"] == "match"
        assert item["payload"] == {"query": "หอพัก"}

    def test_disabled_writes_nothing(self, log_path, monkeypatch):
        monkeypatch.setenv("RETRIEVAL_TELEMETRY_ENABLED", "0")
        append_retrieval_telemetry("match", {})
        assert not log_path.exists()

    def test_summary_counts_and_match_rate(self, log_path):
        for event in ("match", "match", "match", "no_match", "negation_block", "tokenizer_fallback"):
            append_retrieval_telemetry(event, {})
        with open(log_path, "a", encoding="utf-8") as f:
            f.write("{broken\n")

        summary = read_retrieval_telemetry_summary(hours=24, limit=3)
        assert summary["counts"]["match"] == 3
        assert summary["match_rate_percent"] == 75.0
        assert summary["negation_block_count"] == 1
        assert summary["tokenizer_fallback_count"] == 1
        assert summary["parse_errors"] == 1
        assert len(summary["recent"]) == 3

    def test_summary_breaks_down_reasons_and_blocked_keywords(self, log_path):
        append_retrieval_telemetry("no_match", {"reason": "ไม่พบข้อมูลที่ตรงกัน"})
        append_retrieval_telemetry("no_match", {"reason": "ไม่พบข้อมูลที่ตรงกัน"})
        append_retrieval_telemetry("tokenizer_fallback", {"reason": "timeout"})
        append_retrieval_telemetry("lexicon_degraded", {"source": "synonyms", "error": "boom"})
        append_retrieval_telemetry("negation_block", {"keywords": ["หอพัก"]})
        append_retrieval_telemetry("negation_block", {"keywords": ["หอพัก", "ค่าเทอม"]})

        summary = read_retrieval_telemetry_summary()
        assert summary["no_match_reasons"] == {"ไม่พบข้อมูลที่ตรงกัน": 2}
        assert summary["tokenizer_fallback_reasons"] == {"timeout": 1}
        assert summary["degraded_sources"] == {"synonyms": 1}
        assert summary["top_blocked_keywords"][0] == {"keyword": "หอพัก", "count": 2}
        assert summary["match_rate_percent"] == 0.0

    def test_summary_without_log_file(self, log_path):
        summary = read_retrieval_telemetry_summary()
        assert summary["file_exists"] is False
        assert summary["counts"] == {}
        assert summary["match_rate_percent"] == 0.0
