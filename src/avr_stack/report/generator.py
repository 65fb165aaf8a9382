"""Report generator - JSON and Markdown output."""
from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from ..analysis.result import StackUsage

__all__ = ["ReportGenerator", "Verdict", "verdict_for"]


class Verdict(StrEnum):
    WITHIN_LIMIT = "within_limit"
    EXCEEDS_LIMIT = "exceeds_limit"
    UNBOUNDED = "unbounded"
    UNCHECKED = "unchecked"


_VERDICT_TEXT: dict[Verdict, str] = {
    Verdict.WITHIN_LIMIT: "Within stack limit",
    Verdict.EXCEEDS_LIMIT: "Exceeds stack limit",
    Verdict.UNBOUNDED: "Stack usage cannot be statically bounded",
    Verdict.UNCHECKED: "No stack limit given",
}


def verdict_for(usage: StackUsage, stack_size: int | None = None) -> Verdict:
    if usage.unbounded:
        return Verdict.UNBOUNDED
    if stack_size is None:
        return Verdict.UNCHECKED
    return Verdict.EXCEEDS_LIMIT if usage.exceeds(stack_size) else Verdict.WITHIN_LIMIT


class ReportGenerator:
    def __init__(self, image_name: str = "unknown", call_overhead: int = 2) -> None:
        self.image_name = image_name
        self.call_overhead = call_overhead

    @staticmethod
    def _notes(usage: StackUsage) -> list[str]:
        notes: list[str] = []
        if usage.unbounded and usage.unbounded_at is not None:
            notes.append(f"Stack height grows on every pass through the back-edge at pc 0x{usage.unbounded_at:04X}.")
        if usage.underflow_possible:
            notes.append(
                f"Some path pops more than it pushes (lowest height {usage.min_height}); "
                "heights are not clamped, so the bound may be inaccurate."
            )
        return notes

    def to_dict(self, usage: StackUsage, stack_size: int | None = None) -> dict[str, Any]:
        """Serialize an analysis result into a structured report dictionary."""
        verdict = verdict_for(usage, stack_size)
        headroom = None
        if stack_size is not None and usage.max_height is not None:
            headroom = stack_size - usage.max_height
        return {
            "image": self.image_name,
            "timestamp": datetime.now(UTC).isoformat(),
            "max_height": usage.max_height,
            "unbounded": usage.unbounded,
            "unbounded_at": usage.unbounded_at,
            "stack_size": stack_size,
            "headroom": headroom,
            "verdict": verdict.value,
            "call_overhead": self.call_overhead,
            "statistics": {
                "states_visited": usage.states_visited,
                "max_path_records": usage.max_path_records,
                "min_height": usage.min_height,
            },
            "notes": self._notes(usage),
        }

    def to_json(self, usage: StackUsage, stack_size: int | None = None) -> str:
        """Return the report as a pretty-printed JSON string."""
        return json.dumps(self.to_dict(usage, stack_size), indent=2)

    @staticmethod
    def _markdown_table(headers: list[str], rows: list[list[str]]) -> list[str]:
        sep = "|".join("-" * max(len(h), 3) for h in headers)
        lines = [
            "| " + " | ".join(headers) + " |",
            "|" + sep + "|",
        ]
        for row in rows:
            lines.append("| " + " | ".join(row) + " |")
        return lines

    def to_markdown(self, usage: StackUsage, stack_size: int | None = None) -> str:
        """Render the report as a Markdown document."""
        d = self.to_dict(usage, stack_size)
        verdict = Verdict(d["verdict"])
        lines = [
            f"# Stack Usage Report: {self.image_name}",
            f"\nGenerated: {d['timestamp']}\n",
            "## Summary\n",
        ]
        rows = [
            ["Worst-case stack usage", "unbounded" if d["unbounded"] else f"{d['max_height']} bytes"],
            ["Stack size", "-" if stack_size is None else f"{stack_size} bytes"],
            ["Headroom", "-" if d["headroom"] is None else f"{d['headroom']} bytes"],
            ["Call overhead", f"{self.call_overhead} bytes"],
        ]
        lines.extend(self._markdown_table(["Metric", "Value"], rows))
        lines.append(f"\n**Verdict: {_VERDICT_TEXT[verdict]}**\n")
        lines.append("## Exploration\n")
        stats = d["statistics"]
        lines.append(f"- **States Visited:** {stats['states_visited']}")
        lines.append(f"- **Deepest Path Ledger:** {stats['max_path_records']}")
        lines.append(f"- **Lowest Height:** {stats['min_height']}")
        if d["notes"]:
            lines.append("")
            lines.append("## Notes\n")
            for note in d["notes"]:
                lines.append(f"- {note}")
        return "\n".join(lines)
