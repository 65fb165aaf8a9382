"""Stack-usage analysis package."""

from __future__ import annotations

from .ledger import Revisit, VisitLedger, VisitRecord
from .result import StackUsage
from .traverser import ExplorationContext, Frame, StackAnalysis, analyze

__all__ = [
    "ExplorationContext",
    "Frame",
    "Revisit",
    "StackAnalysis",
    "StackUsage",
    "VisitLedger",
    "VisitRecord",
    "analyze",
]
