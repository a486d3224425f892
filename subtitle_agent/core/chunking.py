"""Bounded-window-with-overlap cursor scheduling.

WHY: Transcripts are far longer than one LLM request can hold. Every
orchestrator (paragraph building, paragraph translation, segment
translation) walks its sequence in bounded windows, resumes from a
persisted cursor, and must always make progress even when the model
returns garbage.

HOW: ChunkOptions normalizes the user's window size and overlap.
ChunkScheduler(total, options) then answers three questions:
  window(cursor)            → the next [start, end) and whether it is last
  advance(previous, cursor) → a cursor strictly past ``previous``
  fallback(start, end)      → the rewind point inside the overlap region

RULES:
- Cursors are clamped to [0, total]
- advance() returns a value > previous whenever previous < total
- A remainder shorter than the overlap is folded into the current window
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChunkOptions:
    """Window size and overlap, in items."""

    max_items: int
    overlap: int

    def normalize(self, default_max: int) -> ChunkOptions:
        max_items = self.max_items if self.max_items > 0 else default_max
        overlap = max(0, self.overlap)
        if overlap >= max_items:
            overlap = max_items - 1
        return ChunkOptions(max_items=max_items, overlap=overlap)


@dataclass(frozen=True)
class ChunkWindow:
    start: int
    end: int
    is_last: bool


class ChunkScheduler:
    """Cursor arithmetic over ``total`` items with normalized options."""

    def __init__(self, total: int, options: ChunkOptions, default_max: int = 1) -> None:
        self.total = max(0, total)
        self.options = options.normalize(default_max)

    def clamp(self, cursor: int) -> int:
        return min(max(cursor, 0), self.total)

    def window(self, cursor: int) -> ChunkWindow:
        start = self.clamp(cursor)
        tentative_end = min(start + self.options.max_items, self.total)
        if tentative_end == self.total or self.total - tentative_end < self.options.overlap:
            return ChunkWindow(start=start, end=self.total, is_last=True)
        return ChunkWindow(start=start, end=tentative_end, is_last=False)

    def advance(self, previous: int, proposed: int) -> int:
        cursor = self.clamp(proposed)
        if cursor <= previous:
            cursor = min(self.total, previous + 1)
        return cursor

    def fallback(self, start: int, end: int) -> int:
        return min(self.total, max(start + 1, end - self.options.overlap))
