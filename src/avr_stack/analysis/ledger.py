"""Path-scoped record of control transfers already explored.

A ledger is an immutable linked list: extending it returns a new ledger that
shares the tail with its parent, so sibling successors scheduled from the same
state never observe each other's records.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from ..image.decoder import Instruction

__all__ = ["Revisit", "VisitLedger", "VisitRecord"]

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class VisitRecord:
    instruction: Instruction
    target: int
    height: int


class Revisit(Enum):
    NEW = "new"
    STABLE = "stable"
    DOMINATED = "dominated"
    GROWING = "growing"
    RAISED = "raised"

    @property
    def explore(self) -> bool:
        return self in (Revisit.NEW, Revisit.RAISED)


class VisitLedger:
    __slots__ = ("_record", "_parent", "_depth")

    def __init__(self, record: VisitRecord | None = None, parent: VisitLedger | None = None) -> None:
        self._record = record
        self._parent = parent
        self._depth = 0 if record is None else (parent._depth if parent is not None else 0) + 1

    def extend(self, record: VisitRecord) -> VisitLedger:
        return VisitLedger(record, self)

    def record(self, instruction: Instruction, target: int, height: int) -> VisitLedger:
        return self.extend(VisitRecord(instruction, target, height))

    def __len__(self) -> int:
        return self._depth

    def __iter__(self) -> Iterator[VisitRecord]:
        node: VisitLedger | None = self
        while node is not None and node._record is not None:
            yield node._record
            node = node._parent

    def matching(self, instruction: Instruction, target: int) -> Iterator[VisitRecord]:
        for entry in self:
            if entry.target == target and entry.instruction == instruction:
                yield entry

    def classify(self, instruction: Instruction, source_pc: int, target: int, height: int) -> Revisit:
        """Classify taking *instruction* at *source_pc* to *target* with the given entry height.

        A transfer is a back-edge when its target is at or before the
        transferring instruction; only a back-edge revisited at a strictly
        greater height is ``GROWING``.
        """
        heights = [entry.height for entry in self.matching(instruction, target)]
        if not heights:
            return Revisit.NEW
        if height in heights:
            return Revisit.STABLE
        if target <= source_pc and min(heights) < height:
            logger.debug(
                "Back-edge %s at 0x%04X -> 0x%04X grows stack from %d to %d",
                instruction, source_pc, target, min(heights), height,
            )
            return Revisit.GROWING
        if max(heights) > height:
            return Revisit.DOMINATED
        return Revisit.RAISED
