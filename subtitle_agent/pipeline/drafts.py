"""Persisted progress state for the paragraph and translation pipelines.

WHY: LLM pipelines over long transcripts take minutes and fail halfway
(rate limits, network, a bad response). The draft records the input, the
output so far, and the resume cursors; the caller saves it after every
chunk, and passing a loaded draft back in continues from the cursor.

HOW: Plain dataclasses with to_dict()/from_dict(). The JSON uses the
camelCase keys of the draft format (maxWordsPerRequest,
lastProcessedWordIndex, translatedSubtitle, ...) so drafts written by
other tools sharing the format load here too.

RULES:
- Cursors are None until the pipeline first writes them
- Options are stored as given; pipelines write back normalized values
- from_dict(to_dict(d)) reproduces d
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from subtitle_agent.config import (
    DEFAULT_MAX_PARAGRAPHS_PER_REQUEST,
    DEFAULT_MAX_WORDS_PER_REQUEST,
    DEFAULT_OVERLAP_PARAGRAPHS,
    DEFAULT_OVERLAP_WORDS,
)
from subtitle_agent.core.chunking import ChunkOptions
from subtitle_agent.core.ir import Paragraph, Segment, Subtitle, Word


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


@dataclass
class ParagraphBuilderOptions:
    max_words_per_request: int = DEFAULT_MAX_WORDS_PER_REQUEST
    overlap_words: int = DEFAULT_OVERLAP_WORDS

    def to_chunk_options(self) -> ChunkOptions:
        return ChunkOptions(max_items=self.max_words_per_request, overlap=self.overlap_words)

    @classmethod
    def from_chunk_options(cls, options: ChunkOptions) -> ParagraphBuilderOptions:
        return cls(max_words_per_request=options.max_items, overlap_words=options.overlap)

    def to_dict(self) -> dict[str, Any]:
        return {"maxWordsPerRequest": self.max_words_per_request, "overlapWords": self.overlap_words}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ParagraphBuilderOptions:
        data = data or {}
        return cls(
            max_words_per_request=int(data.get("maxWordsPerRequest", DEFAULT_MAX_WORDS_PER_REQUEST)),
            overlap_words=int(data.get("overlapWords", DEFAULT_OVERLAP_WORDS)),
        )


@dataclass
class ParagraphBuilderDraft:
    """Progress of one paragraph-building run.

    RULES:
    - Either segments (speaker-grouped input) or words (one speaker-less
      group) carries the input; segments win when both are set
    - paragraphs only grows
    - (last_processed_group_index, last_processed_word_index) is the
      resume point; (group count, 0) means finished
    """

    segments: list[Segment] = field(default_factory=list)
    words: list[Word] = field(default_factory=list)
    paragraphs: list[Paragraph] = field(default_factory=list)
    options: ParagraphBuilderOptions = field(default_factory=ParagraphBuilderOptions)
    last_processed_group_index: int | None = None
    last_processed_word_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.segments:
            data["segments"] = [s.to_dict() for s in self.segments]
        if self.words or not self.segments:
            data["words"] = [w.to_dict() for w in self.words]
        data["paragraphs"] = [p.to_dict() for p in self.paragraphs]
        data["options"] = self.options.to_dict()
        if self.last_processed_group_index is not None:
            data["lastProcessedGroupIndex"] = self.last_processed_group_index
        if self.last_processed_word_index is not None:
            data["lastProcessedWordIndex"] = self.last_processed_word_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParagraphBuilderDraft:
        return cls(
            segments=[Segment.from_dict(s) for s in data.get("segments") or []],
            words=[Word.from_dict(w) for w in data.get("words") or []],
            paragraphs=[Paragraph.from_dict(p) for p in data.get("paragraphs") or []],
            options=ParagraphBuilderOptions.from_dict(data.get("options")),
            last_processed_group_index=_optional_int(data.get("lastProcessedGroupIndex")),
            last_processed_word_index=_optional_int(data.get("lastProcessedWordIndex")),
        )


@dataclass
class TranslationOptions:
    max_paragraphs_per_request: int = DEFAULT_MAX_PARAGRAPHS_PER_REQUEST
    overlap_paragraphs: int = DEFAULT_OVERLAP_PARAGRAPHS

    def to_chunk_options(self) -> ChunkOptions:
        return ChunkOptions(max_items=self.max_paragraphs_per_request, overlap=self.overlap_paragraphs)

    @classmethod
    def from_chunk_options(cls, options: ChunkOptions) -> TranslationOptions:
        return cls(max_paragraphs_per_request=options.max_items, overlap_paragraphs=options.overlap)

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxParagraphsPerRequest": self.max_paragraphs_per_request,
            "overlapParagraphs": self.overlap_paragraphs,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TranslationOptions:
        data = data or {}
        return cls(
            max_paragraphs_per_request=int(
                data.get("maxParagraphsPerRequest", DEFAULT_MAX_PARAGRAPHS_PER_REQUEST)
            ),
            overlap_paragraphs=int(data.get("overlapParagraphs", DEFAULT_OVERLAP_PARAGRAPHS)),
        )


@dataclass
class SubtitleTranslationDraft:
    """Progress of paragraph and segment translation for one subtitle.

    RULES:
    - subtitle is the untouched source; all translations land in
      translated_subtitle
    - translated_subtitle is rebuilt when its target_language differs
      from target_language
    - Paragraph and segment passes keep separate options and cursors
    """

    subtitle: Subtitle
    target_language: str
    translated_subtitle: Subtitle | None = None
    options: TranslationOptions = field(default_factory=TranslationOptions)
    last_processed_paragraph_index: int | None = None
    segment_options: TranslationOptions = field(default_factory=TranslationOptions)
    last_processed_segment_paragraph_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "subtitle": self.subtitle.to_dict(),
            "targetLanguage": self.target_language,
            "options": self.options.to_dict(),
            "segmentOptions": self.segment_options.to_dict(),
        }
        if self.translated_subtitle is not None:
            data["translatedSubtitle"] = self.translated_subtitle.to_dict()
        if self.last_processed_paragraph_index is not None:
            data["lastProcessedParagraphIndex"] = self.last_processed_paragraph_index
        if self.last_processed_segment_paragraph_index is not None:
            data["lastProcessedSegmentParagraphIndex"] = self.last_processed_segment_paragraph_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubtitleTranslationDraft:
        translated = data.get("translatedSubtitle")
        return cls(
            subtitle=Subtitle.from_dict(data["subtitle"]),
            target_language=data["targetLanguage"],
            translated_subtitle=Subtitle.from_dict(translated) if translated else None,
            options=TranslationOptions.from_dict(data.get("options")),
            last_processed_paragraph_index=_optional_int(data.get("lastProcessedParagraphIndex")),
            segment_options=TranslationOptions.from_dict(data.get("segmentOptions")),
            last_processed_segment_paragraph_index=_optional_int(
                data.get("lastProcessedSegmentParagraphIndex")
            ),
        )


# Sync or async; any return value other than an awaitable is ignored.
ProgressCallback = Callable[[Any], Any]


async def notify_progress(callback: ProgressCallback | None, draft: Any) -> None:
    """Invoke a sync or async progress callback and wait for it to finish."""
    if callback is None:
        return
    result = callback(draft)
    if inspect.isawaitable(result):
        await result
