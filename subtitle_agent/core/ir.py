"""Intermediate representation dataclasses for timed words, segments, and paragraphs.

WHY: Every stage of the pipeline (tokenizing, diffing, realigning, chunked
correction, translation, formatting) exchanges the same small set of
records. A single, well-typed representation keeps those stages decoupled
and makes drafts trivially persistable between runs.

HOW: Four dataclasses form a hierarchy:
  Word      — one token of text with start/end timing and a stable id
  Segment   — an ordered run of words (a transcription unit or a sentence)
  Paragraph — corrected words grouped by the LLM, optionally decomposed
              into sentence segments, optionally translated
  Subtitle  — the complete document (title, language, paragraphs)

Each class has to_dict()/from_dict() for JSON persistence. JSON keys use
the camelCase names of the persisted draft format (speakerId,
targetLanguage, ...) so drafts written by one run load in the next.

RULES:
- All times are float seconds
- Word.id is unique and stable; realignment keeps ids of kept words
- Translations are optional and only ever added, never required
- from_dict tolerates missing optional keys (None / empty list)
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any


def generate_id() -> str:
    """Return a fresh unique identifier for words, paragraphs, and subtitles."""
    return uuid.uuid4().hex


@dataclass
class Word:
    """A single token of transcribed text with timing.

    RULES:
    - text may contain leading whitespace (tokens are lossless slices)
    - text may be the empty string (sentinel), never None
    - start <= end is expected but not enforced
    """

    id: str
    text: str
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Word:
        """Parse a Word, accepting either ``text`` or ``word`` for the text field."""
        text = data.get("text")
        if text is None:
            text = data.get("word", "")
        return cls(
            id=data.get("id") or generate_id(),
            text=text,
            start=float(data["start"]),
            end=float(data["end"]),
        )


def _words_from_list(items: list[dict[str, Any]] | None) -> list[Word]:
    return [Word.from_dict(w) for w in items or []]


@dataclass
class Segment:
    """An ordered run of words, optionally attributed to a speaker.

    WHY: Upstream transcription produces segments (one utterance each);
    translation works on sentence-level segments of a paragraph. Both
    share this shape.

    RULES:
    - speaker_id is None when diarization was not available
    - translation is None until a translator fills it in
    """

    id: str
    start: float
    end: float
    text: str
    words: list[Word] = field(default_factory=list)
    speaker_id: str | None = None
    translation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "words": [w.to_dict() for w in self.words],
        }
        if self.speaker_id is not None:
            data["speakerId"] = self.speaker_id
        if self.translation is not None:
            data["translation"] = self.translation
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Segment:
        return cls(
            id=data.get("id") or generate_id(),
            start=float(data.get("start", 0.0)),
            end=float(data.get("end", 0.0)),
            text=data.get("text", ""),
            words=_words_from_list(data.get("words")),
            speaker_id=data.get("speakerId"),
            translation=data.get("translation"),
        )


@dataclass
class Paragraph:
    """A corrected, LLM-delimited paragraph of words.

    WHY: The correction step inserts paragraph breaks; each paragraph is
    the unit of paragraph-level translation and the container for the
    sentence segments used by segment-level translation.

    HOW: Built from realigned words with Paragraph.from_words(), which
    derives start/end from the first/last word and text from the
    concatenated word texts.

    RULES:
    - start/end/text are derived once at construction time
    - segments is None until ensure_paragraph_segments() runs
    - a paragraph with no words has start=end=0 and empty text
    """

    id: str
    start: float
    end: float
    text: str
    words: list[Word] = field(default_factory=list)
    speaker_id: str | None = None
    translation: str | None = None
    segments: list[Segment] | None = None

    @classmethod
    def from_words(cls, words: list[Word], speaker_id: str | None = None) -> Paragraph:
        if not words:
            return cls(id=generate_id(), start=0.0, end=0.0, text="", words=[], speaker_id=speaker_id)
        return cls(
            id=generate_id(),
            start=words[0].start,
            end=words[-1].end,
            text="".join(w.text for w in words).strip(),
            words=list(words),
            speaker_id=speaker_id,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "words": [w.to_dict() for w in self.words],
        }
        if self.speaker_id is not None:
            data["speakerId"] = self.speaker_id
        if self.translation is not None:
            data["translation"] = self.translation
        if self.segments is not None:
            data["segments"] = [s.to_dict() for s in self.segments]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Paragraph:
        segments = data.get("segments")
        return cls(
            id=data.get("id") or generate_id(),
            start=float(data.get("start", 0.0)),
            end=float(data.get("end", 0.0)),
            text=data.get("text", ""),
            words=_words_from_list(data.get("words")),
            speaker_id=data.get("speakerId"),
            translation=data.get("translation"),
            segments=[Segment.from_dict(s) for s in segments] if segments is not None else None,
        )

    def clone(self) -> Paragraph:
        """Deep copy, so translation merges never touch the source subtitle."""
        return copy.deepcopy(self)


@dataclass
class Subtitle:
    """The complete subtitle document.

    RULES:
    - target_language is None for an untranslated subtitle
    - paragraphs are ordered by time
    """

    id: str
    title: str
    filename: str
    language: str
    paragraphs: list[Paragraph] = field(default_factory=list)
    target_language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "filename": self.filename,
            "language": self.language,
            "paragraphs": [p.to_dict() for p in self.paragraphs],
        }
        if self.target_language is not None:
            data["targetLanguage"] = self.target_language
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Subtitle:
        return cls(
            id=data.get("id") or generate_id(),
            title=data.get("title", ""),
            filename=data.get("filename", ""),
            language=data.get("language", "unknown"),
            paragraphs=[Paragraph.from_dict(p) for p in data.get("paragraphs", [])],
            target_language=data.get("targetLanguage"),
        )
