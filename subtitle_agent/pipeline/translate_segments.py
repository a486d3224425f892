"""Chunked, resumable sentence-segment translation.

WHY: Subtitle cues are sentences, not paragraphs. Once every paragraph
has a translation, each of its sentence segments gets its own, guided by
the paragraph translation and the segments translated before it.

HOW: Same window/cursor discipline as paragraph translation, over the
translated subtitle's paragraphs, with its own options and cursor. A
paragraph is pending while any of its segments is untranslated; a
single-segment paragraph simply adopts the paragraph translation.
Pending paragraphs are sent with their already-translated segments
removed. Results are merged by (paragraph id, segment id).

RULES:
- Requires draft.translated_subtitle; raises
  MissingParagraphTranslationsError otherwise
- Paragraphs without segments are never pending (run
  ensure_paragraph_segments first)
- The cursor always advances to the window end
"""

from __future__ import annotations

import dataclasses
import logging

from subtitle_agent.config import DEFAULT_MAX_PARAGRAPHS_PER_REQUEST
from subtitle_agent.core.chunking import ChunkScheduler
from subtitle_agent.core.ir import Paragraph, Segment, Subtitle
from subtitle_agent.llm.models import SegmentTranslationResult
from subtitle_agent.llm.protocols import SegmentTranslator
from subtitle_agent.pipeline.drafts import (
    ProgressCallback,
    SubtitleTranslationDraft,
    TranslationOptions,
    notify_progress,
)
from subtitle_agent.pipeline.translate_paragraphs import has_translation

logger = logging.getLogger(__name__)


class MissingParagraphTranslationsError(ValueError):
    """Raised when segment translation runs before paragraph translation."""

    def __init__(self) -> None:
        super().__init__("Cannot translate segments before paragraphs have been translated.")


def segment_prompt_id(paragraph_id: str, segment: Segment, index: int) -> str:
    return segment.id or f"{paragraph_id}-segment-{index}"


def _adopt_paragraph_translation(paragraph: Paragraph) -> None:
    if not paragraph.segments or len(paragraph.segments) != 1:
        return
    segment = paragraph.segments[0]
    if has_translation(segment.translation) or not has_translation(paragraph.translation):
        return
    segment.translation = paragraph.translation.strip()


def has_pending_segments(paragraph: Paragraph) -> bool:
    """True if the paragraph has at least one untranslated segment.

    Fills a lone segment from the paragraph translation before checking.
    """
    if not paragraph.segments:
        return False
    _adopt_paragraph_translation(paragraph)
    return any(not has_translation(s.translation) for s in paragraph.segments)


def _fully_translated(paragraph: Paragraph) -> bool:
    return bool(paragraph.segments) and all(has_translation(s.translation) for s in paragraph.segments)


def _first_pending(paragraphs: list[Paragraph]) -> int:
    for index, paragraph in enumerate(paragraphs):
        if has_pending_segments(paragraph):
            return index
    return len(paragraphs)


def _context(paragraphs: list[Paragraph], start: int, overlap: int) -> list[Paragraph]:
    if overlap <= 0 or start <= 0:
        return []
    return [p for p in paragraphs[max(0, start - overlap):start] if _fully_translated(p)]


def _prompt_paragraph(paragraph: Paragraph) -> Paragraph:
    """Copy of the paragraph carrying only its untranslated segments.

    Segment ids are resolved to their prompt ids so the response keys
    line up with the merge step.
    """
    segments = [
        dataclasses.replace(segment, id=segment_prompt_id(paragraph.id, segment, index))
        for index, segment in enumerate(paragraph.segments or [])
        if not has_translation(segment.translation)
    ]
    return dataclasses.replace(paragraph, segments=segments)


def _translations_by_segment(results: list[SegmentTranslationResult]) -> dict[tuple[str, str], str]:
    translations: dict[tuple[str, str], str] = {}
    for result in results:
        for segment in result.segments:
            translations[(result.id, segment.id)] = segment.translation
    return translations


async def translate_segments(
    draft: SubtitleTranslationDraft,
    translator: SegmentTranslator,
    on_chunk_result: ProgressCallback | None = None,
) -> Subtitle:
    """Translate every pending segment of the draft's translated subtitle.

    Args:
        draft: Draft whose translated_subtitle already holds paragraph
            translations and segments. Mutated.
        translator: Async bulk segment translator.
        on_chunk_result: Called (and awaited, if async) after every window.

    Returns:
        draft.translated_subtitle.

    Raises:
        MissingParagraphTranslationsError: If draft.translated_subtitle is None.
    """
    translated = draft.translated_subtitle
    if translated is None:
        raise MissingParagraphTranslationsError()

    paragraphs = translated.paragraphs
    if not paragraphs:
        draft.last_processed_segment_paragraph_index = 0
        return translated

    options = draft.segment_options.to_chunk_options().normalize(DEFAULT_MAX_PARAGRAPHS_PER_REQUEST)
    draft.segment_options = TranslationOptions.from_chunk_options(options)
    scheduler = ChunkScheduler(len(paragraphs), options, DEFAULT_MAX_PARAGRAPHS_PER_REQUEST)

    persisted = draft.last_processed_segment_paragraph_index
    cursor = scheduler.clamp(persisted if persisted is not None else _first_pending(paragraphs))

    if cursor >= scheduler.total:
        draft.last_processed_segment_paragraph_index = scheduler.total
        return translated

    while cursor < scheduler.total:
        window = scheduler.window(cursor)
        pending = [p for p in paragraphs[window.start:window.end] if has_pending_segments(p)]

        if pending:
            context = _context(paragraphs, window.start, options.overlap)
            logger.info(
                "Translating segments of paragraphs %d-%d of %d (%d pending, %d context)",
                window.start, window.end, scheduler.total, len(pending), len(context),
            )
            results = await translator([_prompt_paragraph(p) for p in pending], context)
            translations = _translations_by_segment(results)

            for paragraph in paragraphs[window.start:window.end]:
                for index, segment in enumerate(paragraph.segments or []):
                    key = (paragraph.id, segment_prompt_id(paragraph.id, segment, index))
                    value = (translations.get(key) or "").strip()
                    if value:
                        segment.translation = value

        cursor = scheduler.advance(cursor, window.end)
        draft.last_processed_segment_paragraph_index = cursor
        await notify_progress(on_chunk_result, draft)

    draft.last_processed_segment_paragraph_index = scheduler.total
    return translated
