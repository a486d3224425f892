"""Chunked LLM correction and paragraph building.

WHY: The correction model fixes typos, strips fillers, punctuates, and
inserts paragraph breaks, but it can only see a bounded slice of the
transcript at a time, and a paragraph cut by the slice boundary is
usually wrong. The builder therefore commits only the paragraphs it is
sure of and re-sends the last ("tail") paragraph with more right context.

HOW: polish_words() corrects one slice: join word texts, call the
corrector, realign timestamps, split on newline tokens. polish() drives
it over the whole draft:
  1. Split the input into speaker groups (maximal same-speaker runs)
  2. For each group, walk windows from ChunkScheduler, resuming from the
     draft's (group, word) cursor
  3. Non-final window: commit all paragraphs but the tail and resume at
     the tail's first word (or rewind into the overlap region when the
     tail can't be located or nothing came back)
  4. Final window: commit everything
  5. After every window, stamp the speaker, write the cursor back, and
     await the progress callback

RULES:
- A failed correction raises CorrectionFailedError and aborts the run;
  the cursor of the last completed window stays in the draft
- Every window moves the cursor forward by at least one word
- Paragraphs never span two speaker groups
- Re-running a finished draft makes no corrector calls
"""

from __future__ import annotations

import dataclasses
import logging

from subtitle_agent.config import DEFAULT_MAX_WORDS_PER_REQUEST
from subtitle_agent.core.alignment import realign_word_timestamps
from subtitle_agent.core.chunking import ChunkScheduler
from subtitle_agent.core.ir import Paragraph, Word, generate_id
from subtitle_agent.core.segments import group_segments_by_speaker
from subtitle_agent.core.tokenizer import join_words_text
from subtitle_agent.llm.protocols import TextCorrector
from subtitle_agent.pipeline.drafts import (
    ParagraphBuilderDraft,
    ParagraphBuilderOptions,
    ProgressCallback,
    notify_progress,
)

logger = logging.getLogger(__name__)


class CorrectionFailedError(RuntimeError):
    """Raised when the correction capability reports failure.

    RULES:
    - Message starts with "Failed to correct text with LLM"
    - Carries the capability's error string (may be None)
    """

    def __init__(self, error: str | None = None) -> None:
        self.error = error
        message = "Failed to correct text with LLM"
        if error:
            message = f"{message}: {error}"
        super().__init__(message)


def _split_paragraphs(words: list[Word]) -> list[Paragraph]:
    """Split realigned words into paragraphs at line breaks.

    A break may sit anywhere in a token's text (" \\nnext", "end.\\n"). The
    text before the break stays with the current paragraph and the text
    after it opens the next one; a token with text on both sides is split
    into two words.
    """
    paragraphs: list[Paragraph] = []
    current: list[Word] = []

    def _close() -> None:
        if current:
            paragraphs.append(Paragraph.from_words(list(current)))
            current.clear()

    for word in words:
        text = word.text.replace("\r", "\n")
        if "\n" not in text:
            current.append(word)
            continue

        head = text[:text.index("\n")].rstrip()
        tail = text[text.rindex("\n") + 1:].lstrip()
        if head:
            current.append(dataclasses.replace(word, text=head))
        _close()
        if tail:
            if head:
                current.append(dataclasses.replace(word, id=generate_id(), text=" " + tail, start=word.end))
            else:
                current.append(dataclasses.replace(word, text=tail))

    _close()
    return paragraphs


async def polish_words(
    words: list[Word], corrector: TextCorrector
) -> tuple[list[Paragraph], list[Word]]:
    """Correct one slice of words and split it into paragraphs.

    Args:
        words: The slice to correct, in order.
        corrector: Async text corrector.

    Returns:
        (paragraphs, corrected_words). corrected_words are the realigned
        words before newline stripping; paragraphs hold the cleaned words.

    Raises:
        CorrectionFailedError: If the corrector reports success=False.
    """
    result = await corrector(join_words_text(words))
    if not result.success:
        raise CorrectionFailedError(result.error)

    corrected_words = realign_word_timestamps(words, result.corrected_text)
    paragraphs = _split_paragraphs([dataclasses.replace(w) for w in corrected_words])

    if not paragraphs and not corrected_words:
        paragraphs.append(Paragraph.from_words([]))

    return paragraphs, corrected_words


def _speaker_groups(draft: ParagraphBuilderDraft) -> list[tuple[str | None, list[Word]]]:
    if not draft.segments:
        return [(None, draft.words)] if draft.words else []
    groups = []
    for group in group_segments_by_speaker(draft.segments):
        words = [word for segment in group for word in segment.words]
        groups.append((group[0].speaker_id, words))
    return groups


def _first_mapped_index(paragraph: Paragraph, lookup: dict[str, int]) -> int | None:
    indices = [lookup[w.id] for w in paragraph.words if w.id in lookup]
    return min(indices) if indices else None


async def polish(
    draft: ParagraphBuilderDraft,
    corrector: TextCorrector,
    on_chunk_result: ProgressCallback | None = None,
) -> ParagraphBuilderDraft:
    """Build corrected paragraphs for the whole draft, resumably.

    Args:
        draft: Input words/segments plus progress. Mutated in place.
        corrector: Async text corrector.
        on_chunk_result: Called (and awaited, if async) with the draft
            after every window.

    Returns:
        The same draft, with cursors at their terminal values.

    Raises:
        CorrectionFailedError: On the first failed correction.
    """
    groups = _speaker_groups(draft)
    options = draft.options.to_chunk_options().normalize(DEFAULT_MAX_WORDS_PER_REQUEST)
    draft.options = ParagraphBuilderOptions.from_chunk_options(options)

    group_index = min(max(draft.last_processed_group_index or 0, 0), len(groups))
    word_index = draft.last_processed_word_index or 0

    while group_index < len(groups):
        speaker_id, words = groups[group_index]
        scheduler = ChunkScheduler(len(words), options, DEFAULT_MAX_WORDS_PER_REQUEST)
        lookup = {word.id: index for index, word in enumerate(words)}
        cursor = scheduler.clamp(word_index)

        while cursor < scheduler.total:
            window = scheduler.window(cursor)
            committed: list[Paragraph] = []

            if window.end <= window.start:
                next_cursor = window.start + 1
            else:
                logger.info(
                    "Correcting group %d words %d-%d of %d",
                    group_index, window.start, window.end, scheduler.total,
                )
                paragraphs, _ = await polish_words(words[window.start:window.end], corrector)

                if window.is_last:
                    committed = paragraphs
                    next_cursor = scheduler.total
                elif paragraphs:
                    committed = paragraphs[:-1]
                    tail_start = _first_mapped_index(paragraphs[-1], lookup)
                    if tail_start is not None:
                        next_cursor = tail_start
                    else:
                        next_cursor = scheduler.fallback(window.start, window.end)
                else:
                    logger.warning(
                        "Correction returned no paragraphs for words %d-%d; rewinding into overlap",
                        window.start, window.end,
                    )
                    next_cursor = scheduler.fallback(window.start, window.end)

            cursor = scheduler.advance(cursor, next_cursor)

            committed = [p for p in committed if p.words]
            for paragraph in committed:
                paragraph.speaker_id = speaker_id
            draft.paragraphs.extend(committed)
            draft.last_processed_group_index = group_index
            draft.last_processed_word_index = cursor

            await notify_progress(on_chunk_result, draft)

        group_index += 1
        word_index = 0
        draft.last_processed_group_index = group_index
        draft.last_processed_word_index = 0

    draft.last_processed_group_index = len(groups)
    draft.last_processed_word_index = 0
    return draft
