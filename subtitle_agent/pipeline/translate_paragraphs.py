"""Chunked, resumable paragraph translation.

WHY: A subtitle holds hundreds of paragraphs; one request cannot carry
them all, and consistent terminology needs the previous translations as
context. Failed or partial responses must not stop the run: whatever is
still untranslated is simply picked up by the next invocation.

HOW: The source subtitle is deep-copied into draft.translated_subtitle
once (reused while the target language matches). The cursor starts at
the persisted index or the first untranslated paragraph; each window from
ChunkScheduler sends only its untranslated paragraphs, plus up to
``overlap`` already-translated paragraphs just before the window as
context. Non-blank results are merged by paragraph id.

RULES:
- The source subtitle is never modified
- The cursor always advances to the window end, translated or not
- A paragraph is pending while its translation is missing or blank
- Translations are stripped before they are stored
"""

from __future__ import annotations

import logging

from subtitle_agent.config import DEFAULT_MAX_PARAGRAPHS_PER_REQUEST
from subtitle_agent.core.chunking import ChunkScheduler
from subtitle_agent.core.ir import Paragraph, Subtitle
from subtitle_agent.llm.protocols import ParagraphTranslator
from subtitle_agent.pipeline.drafts import (
    ProgressCallback,
    SubtitleTranslationDraft,
    TranslationOptions,
    notify_progress,
)

logger = logging.getLogger(__name__)


def has_translation(text: str | None) -> bool:
    return bool(text and text.strip())


def ensure_translated_subtitle(draft: SubtitleTranslationDraft) -> Subtitle:
    """Return the draft's translated subtitle, creating it if needed."""
    existing = draft.translated_subtitle
    if existing is not None and existing.target_language == draft.target_language:
        return existing

    source = draft.subtitle
    draft.translated_subtitle = Subtitle(
        id=source.id,
        title=source.title,
        filename=source.filename,
        language=source.language,
        paragraphs=[p.clone() for p in source.paragraphs],
        target_language=draft.target_language,
    )
    return draft.translated_subtitle


def _first_pending(paragraphs: list[Paragraph]) -> int:
    for index, paragraph in enumerate(paragraphs):
        if not has_translation(paragraph.translation):
            return index
    return len(paragraphs)


def _context(paragraphs: list[Paragraph], start: int, overlap: int) -> list[Paragraph]:
    if overlap <= 0 or start <= 0:
        return []
    return [
        p for p in paragraphs[max(0, start - overlap):start]
        if has_translation(p.translation)
    ]


async def translate_paragraphs(
    draft: SubtitleTranslationDraft,
    translator: ParagraphTranslator,
    on_chunk_result: ProgressCallback | None = None,
) -> Subtitle:
    """Translate every pending paragraph of the draft's subtitle.

    Args:
        draft: Source subtitle, target language, and progress. Mutated.
        translator: Async bulk paragraph translator.
        on_chunk_result: Called (and awaited, if async) after every window.

    Returns:
        draft.translated_subtitle.
    """
    translated = ensure_translated_subtitle(draft)
    options = draft.options.to_chunk_options().normalize(DEFAULT_MAX_PARAGRAPHS_PER_REQUEST)
    draft.options = TranslationOptions.from_chunk_options(options)

    paragraphs = translated.paragraphs
    scheduler = ChunkScheduler(len(paragraphs), options, DEFAULT_MAX_PARAGRAPHS_PER_REQUEST)

    persisted = draft.last_processed_paragraph_index
    cursor = scheduler.clamp(persisted if persisted is not None else _first_pending(paragraphs))

    if cursor >= scheduler.total:
        draft.last_processed_paragraph_index = scheduler.total
        return translated

    while cursor < scheduler.total:
        window = scheduler.window(cursor)
        pending = [
            p for p in paragraphs[window.start:window.end]
            if not has_translation(p.translation)
        ]

        if pending:
            context = _context(paragraphs, window.start, options.overlap)
            logger.info(
                "Translating paragraphs %d-%d of %d (%d pending, %d context)",
                window.start, window.end, scheduler.total, len(pending), len(context),
            )
            results = await translator(pending, context)
            by_id = {
                p.id: p.translation.strip()
                for p in results
                if has_translation(p.translation)
            }
            for paragraph in paragraphs[window.start:window.end]:
                if paragraph.id in by_id:
                    paragraph.translation = by_id[paragraph.id]
            missing = sum(1 for p in pending if p.id not in by_id)
            if missing:
                logger.warning("%d paragraph(s) left untranslated in %d-%d", missing, window.start, window.end)

        cursor = scheduler.advance(cursor, window.end)
        draft.last_processed_paragraph_index = cursor
        await notify_progress(on_chunk_result, draft)

    draft.last_processed_paragraph_index = scheduler.total
    return translated
