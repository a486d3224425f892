"""Adapter: WhisperKit-style transcription JSON to Segments.

WHY: The transcription engine emits segments whose ``words`` do not line
up with our tokenizer: one engine word may hold several tokens ("don't,"
or two CJK characters), and the word texts may drift from the segment
text. The pipelines need words that tokenize exactly like the text they
will be diffed against.

HOW: For each segment, words are read (``text`` or ``word``, id generated
when missing), then update_words_from_text() re-syncs them with the
segment text: multi-token words are split with proportional timing, and
edits are folded in.

RULES:
- Input dict is never modified
- speakerId is carried over as Segment.speaker_id
- Segments keep their order; a segment with no words ends up with no words
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from subtitle_agent.core.alignment import update_words_from_text
from subtitle_agent.core.ir import Segment, Word, generate_id


@dataclass
class WhisperTranscript:
    """An imported transcription: language, full text, and segments."""

    language: str
    text: str
    segments: list[Segment] = field(default_factory=list)

    @property
    def words(self) -> list[Word]:
        return [word for segment in self.segments for word in segment.words]


def import_segments(data: dict[str, Any]) -> list[Segment]:
    """Convert the ``segments`` array of a transcription JSON into Segments."""
    segments: list[Segment] = []
    for raw in data.get("segments") or []:
        words = [
            Word(
                id=w.get("id") or generate_id(),
                text=w["text"] if w.get("text") is not None else w.get("word", ""),
                start=float(w["start"]),
                end=float(w["end"]),
            )
            for w in raw.get("words") or []
        ]
        text = raw.get("text", "")
        segments.append(
            Segment(
                id=raw.get("id") or generate_id(),
                start=float(raw.get("start", 0.0)),
                end=float(raw.get("end", 0.0)),
                text=text,
                words=update_words_from_text(words, text),
                speaker_id=raw.get("speakerId"),
            )
        )
    return segments


def import_whisper(data: dict[str, Any]) -> WhisperTranscript:
    """Parse a full transcription JSON document."""
    return WhisperTranscript(
        language=data.get("language") or "unknown",
        text=data.get("text", ""),
        segments=import_segments(data),
    )
