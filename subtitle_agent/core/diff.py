"""Word-level sequence diff between timestamped words and new token texts.

WHY: After the LLM rewrites a chunk of text, we must know which original
words survived, which were edited, which vanished, and which are new.
Only then can timestamps be carried over (kept words) or interpolated
(new words).

HOW: A longest-common-subsequence table over the two text sequences, built
with a pluggable comparator, yields alternating runs of equal / removed /
added items (common prefix and suffix are trimmed first so the table stays
small). A post-pass turns each run into DiffEntry values:
  - removed run directly followed by an added run → the first
    min(removed, added) pairs become Modified, positionally
  - surplus removed → Removed, surplus added → Added
  - each pair in an equal run is re-checked with exact string equality;
    a comparator match with different literal text becomes Modified

RULES:
- Every old word appears exactly once in Unchanged/Modified/Removed
- Every new text appears exactly once in Unchanged/Modified/Added
- Entries come out in sequence order
- Unchanged always means literal equality; the comparator only drives
  the alignment
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable, Sequence
from typing import Union

from subtitle_agent.core.ir import Word

Comparator = Callable[[str, str], bool]


@dataclass(frozen=True)
class Unchanged:
    """The old word appears verbatim in the new text."""

    word: Word


@dataclass(frozen=True)
class Modified:
    """The old word was rewritten; its timing is kept, its text replaced."""

    word: Word
    text: str


@dataclass(frozen=True)
class Removed:
    """The old word has no counterpart in the new text."""

    word: Word


@dataclass(frozen=True)
class Added:
    """A new token with no original word behind it."""

    text: str


DiffEntry = Union[Unchanged, Modified, Removed, Added]

# Run tags produced by the LCS pass.
_EQUAL = "equal"
_REMOVED = "removed"
_ADDED = "added"


def are_words_same(left: str, right: str) -> bool:
    """Default comparator: exact text equality."""
    return left == right


def _diff_runs(
    old: Sequence[str],
    new: Sequence[str],
    are_same: Comparator,
) -> list[tuple[str, int]]:
    """Compute (tag, count) runs aligning ``old`` against ``new``.

    Between two equal runs, all removals are reported before all additions.
    """
    old_len, new_len = len(old), len(new)

    prefix = 0
    while prefix < old_len and prefix < new_len and are_same(old[prefix], new[prefix]):
        prefix += 1

    suffix = 0
    while (
        suffix < old_len - prefix
        and suffix < new_len - prefix
        and are_same(old[old_len - 1 - suffix], new[new_len - 1 - suffix])
    ):
        suffix += 1

    mid_old = old[prefix:old_len - suffix]
    mid_new = new[prefix:new_len - suffix]
    n, m = len(mid_old), len(mid_new)

    # lcs[i][j] = LCS length of mid_old[i:] and mid_new[j:]
    lcs = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = lcs[i], lcs[i + 1]
        for j in range(m - 1, -1, -1):
            if are_same(mid_old[i], mid_new[j]):
                row[j] = below[j + 1] + 1
            else:
                row[j] = below[j] if below[j] >= row[j + 1] else row[j + 1]

    runs: list[tuple[str, int]] = []

    def _append(tag: str, count: int) -> None:
        if count <= 0:
            return
        if runs and runs[-1][0] == tag:
            runs[-1] = (tag, runs[-1][1] + count)
        else:
            runs.append((tag, count))

    _append(_EQUAL, prefix)

    pending_removed = 0
    pending_added = 0
    i = j = 0
    while i < n or j < m:
        if i < n and j < m and are_same(mid_old[i], mid_new[j]) and lcs[i][j] == lcs[i + 1][j + 1] + 1:
            _append(_REMOVED, pending_removed)
            _append(_ADDED, pending_added)
            pending_removed = pending_added = 0
            _append(_EQUAL, 1)
            i += 1
            j += 1
        elif j >= m or (i < n and lcs[i + 1][j] >= lcs[i][j + 1]):
            pending_removed += 1
            i += 1
        else:
            pending_added += 1
            j += 1

    _append(_REMOVED, pending_removed)
    _append(_ADDED, pending_added)
    _append(_EQUAL, suffix)
    return runs


def diff_words(
    old_words: Sequence[Word],
    new_texts: Sequence[str],
    are_same: Comparator | None = None,
) -> list[DiffEntry]:
    """Align timestamped words against new token texts.

    Args:
        old_words: Original words, in order.
        new_texts: New token texts, in order (e.g. from tokenize()).
        are_same: Optional comparator used to align the sequences.
            Defaults to exact string equality.

    Returns:
        DiffEntry values covering every old word and every new text once.
    """
    comparator = are_same or are_words_same
    runs = _diff_runs([w.text for w in old_words], list(new_texts), comparator)

    result: list[DiffEntry] = []
    old_index = 0
    new_index = 0
    i = 0

    while i < len(runs):
        tag, count = runs[i]

        if tag == _REMOVED:
            next_run = runs[i + 1] if i + 1 < len(runs) else None
            if next_run is not None and next_run[0] == _ADDED:
                added_count = next_run[1]
                paired = min(count, added_count)

                for k in range(paired):
                    result.append(Modified(old_words[old_index + k], new_texts[new_index + k]))
                for k in range(paired, count):
                    result.append(Removed(old_words[old_index + k]))
                for k in range(paired, added_count):
                    result.append(Added(new_texts[new_index + k]))

                old_index += count
                new_index += added_count
                i += 2
                continue

            for k in range(count):
                result.append(Removed(old_words[old_index + k]))
            old_index += count

        elif tag == _ADDED:
            for k in range(count):
                result.append(Added(new_texts[new_index + k]))
            new_index += count

        else:
            for k in range(count):
                old_word = old_words[old_index + k]
                new_text = new_texts[new_index + k]
                if old_word.text == new_text:
                    result.append(Unchanged(old_word))
                else:
                    result.append(Modified(old_word, new_text))
            old_index += count
            new_index += count

        i += 1

    return result
