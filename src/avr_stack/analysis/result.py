"""Stack-usage analysis result."""
from __future__ import annotations

from dataclasses import dataclass

__all__ = ["StackUsage"]


@dataclass(slots=True, frozen=True)
class StackUsage:
    """Worst-case stack height in bytes, or ``max_height=None`` when no bound exists."""

    max_height: int | None = 0
    min_height: int = 0
    states_visited: int = 0
    max_path_records: int = 0
    # pc of the back-edge that was first seen growing the stack.
    unbounded_at: int | None = None

    @property
    def unbounded(self) -> bool:
        return self.max_height is None

    @property
    def underflow_possible(self) -> bool:
        """Some path popped more bytes than it pushed; heights were not clamped."""
        return self.min_height < 0

    def join(self, other: StackUsage) -> StackUsage:
        """Combine two results; unbounded absorbs any finite height."""
        if self.max_height is None or other.max_height is None:
            max_height = None
        else:
            max_height = max(self.max_height, other.max_height)
        return StackUsage(
            max_height=max_height,
            min_height=min(self.min_height, other.min_height),
            states_visited=self.states_visited + other.states_visited,
            max_path_records=max(self.max_path_records, other.max_path_records),
            unbounded_at=self.unbounded_at if self.unbounded_at is not None else other.unbounded_at,
        )

    def exceeds(self, stack_size: int) -> bool:
        return self.max_height is None or self.max_height > stack_size

    def __str__(self) -> str:
        return "unbounded" if self.max_height is None else f"{self.max_height} bytes"
