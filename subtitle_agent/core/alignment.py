"""Timestamp realignment of corrected text onto timed words.

WHY: The LLM returns corrected text with no timing. Subtitles need every
word timed, so the corrected tokens are mapped back onto the original
words: kept words keep their exact timestamps, new words get timestamps
interpolated from their neighbours.

HOW: realign_word_timestamps() tokenizes the corrected text, diffs it
against the original words, and walks the diff:
  - Unchanged → copy of the original word
  - Modified  → original id and timing, new text
  - Removed   → dropped
  - Added     → fresh id, timing from the left anchor (last emitted word)
                and the right anchor (next original word not yet consumed)

import_words() and update_words_from_text() are the import-time
counterparts: they split multi-token transcription words and re-sync a
word list with an edited segment text.

RULES:
- Output order follows the corrected-text token order
- start/end of Unchanged and Modified words are bit-identical to the input
- Never raises; empty inputs give empty (or minimally anchored) output
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from typing import Any, Union

from subtitle_agent.core.diff import Added, Modified, Removed, Unchanged, diff_words
from subtitle_agent.core.ir import Word, generate_id
from subtitle_agent.core.tokenizer import tokenize


def _average_duration(words: list[Word]) -> float:
    if not words:
        return 1.0
    return sum(w.duration for w in words) / len(words)


def _ratio_between(inserted: str, left: str, right: str) -> float:
    total = len(left) + len(inserted) + len(right)
    if total == 0:
        return 0.5
    return len(inserted) / total


def _ratio_single(inserted: str, reference: str) -> float:
    if not reference:
        return 1.0
    return len(inserted) / len(reference)


def _create_inserted_word(
    text: str,
    original_words: list[Word],
    emitted: list[Word],
    original_index: int,
) -> Word:
    """Synthesize a timed word for text that has no original counterpart."""
    left = emitted[-1] if emitted else None
    right = original_words[original_index] if original_index < len(original_words) else None

    if left is not None and right is not None:
        gap = right.start - left.end
        start = left.end
        end = left.end + gap * _ratio_between(text, left.text, right.text)
    elif left is not None:
        duration = _average_duration(original_words) * _ratio_single(text, left.text)
        start = left.end
        end = start + duration
    elif right is not None:
        duration = _average_duration(original_words) * _ratio_single(text, right.text)
        end = right.start
        start = max(0.0, end - duration)
    else:
        start, end = 0.0, 1.0

    return Word(id=generate_id(), text=text, start=start, end=end)


def realign_word_timestamps(original_words: list[Word], corrected_text: str) -> list[Word]:
    """Map corrected text back onto the original timed words.

    Args:
        original_words: Words as sent to the LLM, in order.
        corrected_text: The LLM's corrected version of their joined text.

    Returns:
        New Word list following the corrected tokens. Kept words reuse the
        original ids and timing; inserted words get fresh ids.
    """
    diffs = diff_words(original_words, tokenize(corrected_text))

    result: list[Word] = []
    original_index = 0

    for entry in diffs:
        if isinstance(entry, Unchanged):
            result.append(dataclasses.replace(entry.word))
            original_index += 1
        elif isinstance(entry, Modified):
            result.append(dataclasses.replace(entry.word, text=entry.text))
            original_index += 1
        elif isinstance(entry, Removed):
            original_index += 1
        elif isinstance(entry, Added):
            result.append(_create_inserted_word(entry.text, original_words, result, original_index))

    return result


RawWord = Union[Word, dict[str, Any]]


def _as_word_fields(raw: RawWord) -> tuple[str | None, str, float, float]:
    if isinstance(raw, Word):
        return raw.id, raw.text, raw.start, raw.end
    text = raw.get("text")
    if text is None:
        text = raw.get("word", "")
    return raw.get("id"), text, float(raw["start"]), float(raw["end"])


def import_words(raw_words: Iterable[RawWord]) -> list[Word]:
    """Normalize transcription words into single-token Words.

    Accepts Word objects or dicts carrying either ``text`` or ``word``.
    A word whose text tokenizes into several tokens is split; each piece
    gets a share of the duration proportional to its character count, and
    the last piece ends exactly at the original end.
    """
    result: list[Word] = []

    for raw in raw_words:
        word_id, text, start, end = _as_word_fields(raw)
        pieces = tokenize(text)

        if len(pieces) <= 1:
            result.append(Word(id=word_id or generate_id(), text=text, start=start, end=end))
            continue

        total_chars = len(text)
        duration = end - start
        current = start
        for i, piece in enumerate(pieces):
            if i == len(pieces) - 1:
                piece_end = end
            else:
                piece_end = current + (len(piece) / total_chars) * duration
            result.append(Word(id=generate_id(), text=piece, start=current, end=piece_end))
            current = piece_end

    return result


def update_words_from_text(original_words: list[RawWord], new_text: str) -> list[Word]:
    """Re-sync a word list with an edited text.

    Unlike realign_word_timestamps(), added words get a zero-length span at
    the last known end time, and a modified word immediately followed by a
    removed one is stretched over it (two words merged into one).
    """
    if not original_words or not new_text:
        return []

    words = import_words(original_words)
    if not words:
        return []

    result: list[Word] = []
    last_end = words[0].start
    previous_entry = None
    previous_word: Word | None = None

    for entry in diff_words(words, tokenize(new_text)):
        word: Word | None = None

        if isinstance(entry, Unchanged):
            word = entry.word
            result.append(word)
            last_end = word.end
        elif isinstance(entry, Modified):
            word = dataclasses.replace(entry.word, text=entry.text)
            result.append(word)
            last_end = entry.word.end
        elif isinstance(entry, Added):
            word = Word(id=generate_id(), text=entry.text, start=last_end, end=last_end)
            result.append(word)
        elif isinstance(entry, Removed):
            if isinstance(previous_entry, Modified) and previous_word is not None:
                last_end = entry.word.end
                previous_word.end = last_end

        previous_entry = entry
        previous_word = word

    return result
