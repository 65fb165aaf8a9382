"""Worst-case stack height exploration over AVR control flow."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..image.decoder import Instruction, decode
from ..image.memory import FirmwareImage
from ..image.opcodes import FlowKind
from .ledger import Revisit, VisitLedger
from .result import StackUsage

__all__ = ["ExplorationContext", "Frame", "StackAnalysis", "analyze"]

logger = logging.getLogger(__name__)

Decoder = Callable[[FirmwareImage, int], Instruction]

_JUMP_KINDS = (FlowKind.RELATIVE_JUMP, FlowKind.ABSOLUTE_JUMP)
_CALL_KINDS = (FlowKind.RELATIVE_CALL, FlowKind.ABSOLUTE_CALL)


@dataclass(slots=True, frozen=True)
class Frame:
    pc: int
    height: int
    ledger: VisitLedger


@dataclass(slots=True)
class ExplorationContext:
    """Running result of one analysis run."""

    max_height: int = 0
    min_height: int = 0
    states_visited: int = 0
    max_path_records: int = 0
    unbounded: bool = False
    unbounded_at: int | None = None

    def observe(self, frame: Frame) -> None:
        self.states_visited += 1
        self.max_height = max(self.max_height, frame.height)
        self.min_height = min(self.min_height, frame.height)
        self.max_path_records = max(self.max_path_records, len(frame.ledger))

    def mark_unbounded(self, pc: int) -> None:
        if not self.unbounded:
            self.unbounded = True
            self.unbounded_at = pc

    def to_usage(self) -> StackUsage:
        return StackUsage(
            max_height=None if self.unbounded else self.max_height,
            min_height=self.min_height,
            states_visited=self.states_visited,
            max_path_records=self.max_path_records,
            unbounded_at=self.unbounded_at,
        )


class StackAnalysis:
    """Depth-first exploration of reachable ``(pc, height)`` states of a firmware image.

    Calls are followed as if inlined: the callee is explored at the caller's
    height plus ``CALL_OVERHEAD`` and the caller then continues after the call
    at its original height.
    """

    CALL_OVERHEAD = 2
    ENTRY_PC = 0

    def __init__(self, image: FirmwareImage, decoder: Decoder = decode) -> None:
        self.image = image
        self.decoder = decoder
        self._context = ExplorationContext()

    def apply(self) -> StackUsage:
        """Run the analysis and return the worst-case stack usage."""
        self._context = ExplorationContext()
        logger.info("Analyzing %s (%d bytes) from pc 0x%04X", self.image.name, self.image.size, self.ENTRY_PC)

        work: list[Frame] = [Frame(self.ENTRY_PC, 0, VisitLedger())]
        while work and not self._context.unbounded:
            frame = work.pop()
            successors = self.visit(frame)
            # Reversed so the first successor is explored first.
            work.extend(reversed(successors))

        usage = self._context.to_usage()
        if usage.unbounded:
            logger.warning(
                "Stack usage of %s is unbounded (growing back-edge at pc 0x%04X)",
                self.image.name,
                usage.unbounded_at,
            )
        else:
            logger.info("Worst-case stack usage of %s: %s", self.image.name, usage)
        logger.info("Visited %d states", usage.states_visited)
        return usage

    def visit(self, frame: Frame) -> list[Frame]:
        """Account for *frame* and return the successor frames to explore."""
        self._context.observe(frame)
        # A trailing odd byte is not a whole instruction word.
        if frame.pc < 0 or frame.pc * 2 + 2 > self.image.size:
            return []
        instruction = self.decoder(self.image, frame.pc)
        return self._successors(instruction, frame)

    def already_visited(
        self,
        instruction: Instruction,
        source_pc: int,
        target: int,
        height: int,
        ledger: VisitLedger,
    ) -> bool:
        if self._context.unbounded:
            return True
        revisit = ledger.classify(instruction, source_pc, target, height)
        if revisit is Revisit.GROWING:
            self._context.mark_unbounded(source_pc)
        return not revisit.explore

    def _successors(self, instruction: Instruction, frame: Frame) -> list[Frame]:
        pc, height, ledger = frame.pc, frame.height, frame.ledger
        next_pc = pc + instruction.width
        flow = instruction.flow

        if flow is FlowKind.FALLTHROUGH:
            return [Frame(next_pc, height, ledger)]

        if flow is FlowKind.PUSH:
            return [Frame(next_pc, height + 1, ledger)]

        if flow is FlowKind.POP:
            return [Frame(next_pc, height - 1, ledger)]

        if flow is FlowKind.RETURN:
            return []

        if flow is FlowKind.SKIP:
            return [Frame(next_pc, height, ledger), Frame(next_pc + 1, height, ledger)]

        target = instruction.resolve_target(pc)
        if target is None:
            logger.debug("Unresolved target for %s at pc 0x%04X; edge not explored", instruction, pc)

        if flow is FlowKind.BRANCH:
            if target is None:
                return [Frame(next_pc, height, ledger)]
            if self.already_visited(instruction, pc, target, height, ledger):
                return []
            scoped = ledger.record(instruction, target, height)
            return [Frame(target, height, scoped), Frame(next_pc, height, scoped)]

        if flow in _JUMP_KINDS:
            if target is None or self.already_visited(instruction, pc, target, height, ledger):
                return []
            return [Frame(target, height, ledger.record(instruction, target, height))]

        if flow in _CALL_KINDS:
            continuation = Frame(next_pc, height, ledger)
            if target is None or self.already_visited(instruction, pc, target, height, ledger):
                return [continuation]
            callee = Frame(target, height + self.CALL_OVERHEAD, ledger.record(instruction, target, height))
            return [callee, continuation]

        raise ValueError(f"Unhandled flow kind {flow!r} for {instruction} at pc 0x{pc:04X}")


def analyze(image: FirmwareImage, *, decoder: Decoder = decode, call_overhead: int | None = None) -> StackUsage:
    """Compute the worst-case stack usage of *image* starting at pc 0."""
    analysis = StackAnalysis(image, decoder)
    if call_overhead is not None:
        analysis.CALL_OVERHEAD = call_overhead
    return analysis.apply()
