"""Tests for report output consistency."""
from __future__ import annotations

import json

from avr_stack.analysis.result import StackUsage
from avr_stack.report.generator import ReportGenerator, Verdict, verdict_for


def test_report_bounded_within_limit():
    usage = StackUsage(max_height=12, states_visited=40, max_path_records=3)

    report = ReportGenerator("blink").to_dict(usage, stack_size=64)
    assert report["image"] == "blink"
    assert report["max_height"] == 12
    assert report["unbounded"] is False
    assert report["verdict"] == "within_limit"
    assert report["headroom"] == 52
    assert report["statistics"]["states_visited"] == 40
    assert report["statistics"]["max_path_records"] == 3
    assert report["notes"] == []


def test_report_exceeding_limit():
    usage = StackUsage(max_height=70)
    report = ReportGenerator("blink").to_dict(usage, stack_size=64)
    assert report["verdict"] == "exceeds_limit"
    assert report["headroom"] == -6


def test_report_unbounded():
    usage = StackUsage(max_height=None, unbounded_at=0x12)
    report = ReportGenerator("loop").to_dict(usage, stack_size=64)
    assert report["max_height"] is None
    assert report["unbounded"] is True
    assert report["unbounded_at"] == 0x12
    assert report["verdict"] == "unbounded"
    assert report["headroom"] is None
    assert "0x0012" in report["notes"][0]


def test_verdict_without_stack_size():
    assert verdict_for(StackUsage(max_height=5)) is Verdict.UNCHECKED
    assert verdict_for(StackUsage(max_height=None)) is Verdict.UNBOUNDED


def test_report_notes_possible_underflow():
    usage = StackUsage(max_height=1, min_height=-2)
    report = ReportGenerator("pops").to_dict(usage)
    assert any("lowest height -2" in note for note in report["notes"])


def test_json_output_is_parseable():
    text = ReportGenerator("blink", call_overhead=3).to_json(StackUsage(max_height=9))
    data = json.loads(text)
    assert data["call_overhead"] == 3
    assert data["verdict"] == "unchecked"


def test_markdown_includes_summary_and_verdict():
    markdown = ReportGenerator("blink").to_markdown(StackUsage(max_height=None, unbounded_at=4), stack_size=32)
    assert markdown.startswith("# Stack Usage Report: blink")
    assert "## Summary" in markdown
    assert "| Worst-case stack usage | unbounded |" in markdown
    assert "**Verdict: Stack usage cannot be statically bounded**" in markdown
    assert "## Notes" in markdown
