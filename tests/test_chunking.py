"""Unit tests for core/chunking.py — window and cursor arithmetic."""

import pytest

from subtitle_agent.core.chunking import ChunkOptions, ChunkScheduler, ChunkWindow


class TestChunkOptions:
    def test_valid_options_unchanged(self):
        assert ChunkOptions(4, 1).normalize(10) == ChunkOptions(4, 1)

    @pytest.mark.parametrize("max_items", [0, -3])
    def test_non_positive_max_uses_default(self, max_items):
        assert ChunkOptions(max_items, 1).normalize(10).max_items == 10

    def test_negative_overlap_becomes_zero(self):
        assert ChunkOptions(4, -2).normalize(10).overlap == 0

    def test_overlap_capped_below_max(self):
        assert ChunkOptions(4, 9).normalize(10) == ChunkOptions(4, 3)

    def test_max_of_one_forces_zero_overlap(self):
        assert ChunkOptions(1, 1).normalize(10) == ChunkOptions(1, 0)


class TestChunkScheduler:
    def test_first_window(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 1))
        assert scheduler.window(0) == ChunkWindow(0, 4, False)

    def test_window_reaching_total_is_last(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 1))
        assert scheduler.window(6) == ChunkWindow(6, 10, True)

    def test_remainder_shorter_than_overlap_is_folded_in(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 3))
        assert scheduler.window(4) == ChunkWindow(4, 10, True)

    def test_remainder_equal_to_overlap_is_not_folded(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 2))
        assert scheduler.window(4) == ChunkWindow(4, 8, False)

    def test_cursor_is_clamped(self):
        scheduler = ChunkScheduler(5, ChunkOptions(2, 0))
        assert scheduler.clamp(-4) == 0
        assert scheduler.clamp(99) == 5
        assert scheduler.window(99) == ChunkWindow(5, 5, True)

    def test_empty_sequence(self):
        scheduler = ChunkScheduler(0, ChunkOptions(4, 1))
        assert scheduler.window(0) == ChunkWindow(0, 0, True)

    @pytest.mark.parametrize("proposed", [-1, 0, 3])
    def test_advance_always_moves_forward(self, proposed):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 1))
        assert scheduler.advance(3, proposed) == 4

    def test_advance_accepts_forward_proposal(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 1))
        assert scheduler.advance(3, 7) == 7

    def test_advance_never_passes_total(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 1))
        assert scheduler.advance(9, 50) == 10
        assert scheduler.advance(10, 10) == 10

    def test_fallback_rewinds_into_overlap(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 1))
        assert scheduler.fallback(0, 4) == 3

    def test_fallback_moves_at_least_one_item(self):
        scheduler = ChunkScheduler(10, ChunkOptions(4, 3))
        assert scheduler.fallback(5, 6) == 6

    def test_default_max_applies_to_unset_options(self):
        scheduler = ChunkScheduler(10, ChunkOptions(0, 0), default_max=3)
        assert scheduler.window(0) == ChunkWindow(0, 3, False)
