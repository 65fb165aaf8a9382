"""Stack usage reporting package."""

from __future__ import annotations

from .generator import ReportGenerator, Verdict, verdict_for

__all__ = ["ReportGenerator", "Verdict", "verdict_for"]
