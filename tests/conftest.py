"""Shared test fixtures for the subtitle_agent test suite.

WHY: Most test modules need timed words, paragraphs, and fake LLM
capabilities. Centralizing them here keeps every test on the same
deterministic data.

HOW: Fixtures return factories (make_words, make_paragraph) or async
fakes that satisfy the capability protocols without any HTTP.

RULES:
- Word ids are deterministic ("w0", "w1", ...) so tests can assert on them
- Fakes record every call they receive
- Fakes never touch the network
"""

from __future__ import annotations

from typing import Any

import pytest

from subtitle_agent.core.ir import Paragraph, Segment, Subtitle, Word
from subtitle_agent.llm.models import (
    CorrectionResult,
    SegmentTranslation,
    SegmentTranslationResult,
)


def _make_words(texts: list[str], step: float = 1.0, prefix: str = "w", offset: float = 0.0) -> list[Word]:
    return [
        Word(id=f"{prefix}{i}", text=text, start=offset + i * step, end=offset + (i + 1) * step)
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def make_words():
    """Factory: texts → Words with ids w0.. and 1s-long consecutive spans."""
    return _make_words


@pytest.fixture
def make_paragraph():
    """Factory: texts → Paragraph built from consecutive timed words."""

    def _factory(texts: list[str], paragraph_id: str = "p", speaker_id: str | None = None) -> Paragraph:
        paragraph = Paragraph.from_words(_make_words(texts, prefix=f"{paragraph_id}-w"), speaker_id)
        paragraph.id = paragraph_id
        return paragraph

    return _factory


@pytest.fixture
def sample_subtitle(make_paragraph) -> Subtitle:
    """A five-paragraph English subtitle with no translations."""
    paragraphs = [
        make_paragraph(["Hello", " world."], "p0", "A"),
        make_paragraph(["How", " are", " you?"], "p1", "A"),
        make_paragraph(["Fine,", " thanks."], "p2", "B"),
        make_paragraph(["Good", " to", " hear."], "p3", "A"),
        make_paragraph(["Bye."], "p4", "B"),
    ]
    return Subtitle(id="sub", title="sample", filename="sample.json", language="en", paragraphs=paragraphs)


class FakeCorrector:
    """Records every text and answers with ``respond(text)``."""

    def __init__(self, respond=None, success: bool = True, error: str | None = None) -> None:
        self.calls: list[str] = []
        self._respond = respond or (lambda text: text)
        self._success = success
        self._error = error

    async def __call__(self, text: str) -> CorrectionResult:
        self.calls.append(text)
        if not self._success:
            return CorrectionResult(original_text=text, corrected_text=text, success=False, error=self._error)
        return CorrectionResult(original_text=text, corrected_text=self._respond(text), success=True)


class FakeParagraphTranslator:
    """Translates every paragraph to "T:<text>" unless its id is in ``skip``."""

    def __init__(self, skip: set[str] | None = None) -> None:
        self.calls: list[tuple[list[Paragraph], list[Paragraph]]] = []
        self.skip = skip or set()

    async def __call__(self, pending: list[Paragraph], context: list[Paragraph]) -> list[Paragraph]:
        self.calls.append((pending, context))
        result = []
        for paragraph in pending:
            if paragraph.id in self.skip:
                continue
            copy = paragraph.clone()
            copy.translation = f"  T:{paragraph.text}  "
            result.append(copy)
        return result


class FakeSegmentTranslator:
    """Translates every sent segment to "S:<text>"."""

    def __init__(self) -> None:
        self.calls: list[tuple[list[Paragraph], list[Paragraph]]] = []

    async def __call__(
        self, pending: list[Paragraph], context: list[Paragraph]
    ) -> list[SegmentTranslationResult]:
        self.calls.append((pending, context))
        results = []
        for paragraph in pending:
            segments = [
                SegmentTranslation(id=s.id, text=s.text, translation=f"S:{s.text}")
                for s in paragraph.segments or []
            ]
            if segments:
                results.append(SegmentTranslationResult(id=paragraph.id, segments=segments))
        return results


@pytest.fixture
def fake_corrector():
    return FakeCorrector


@pytest.fixture
def fake_paragraph_translator():
    return FakeParagraphTranslator


@pytest.fixture
def fake_segment_translator():
    return FakeSegmentTranslator


def speaker_segment(segment_id: str, speaker_id: str | None, words: list[Word]) -> Segment:
    return Segment(
        id=segment_id,
        start=words[0].start if words else 0.0,
        end=words[-1].end if words else 0.0,
        text="".join(w.text for w in words),
        words=words,
        speaker_id=speaker_id,
    )


@pytest.fixture
def make_segment():
    """Factory: (id, speaker_id, words) → Segment with derived timing and text."""
    return speaker_segment


@pytest.fixture
def whisper_document() -> dict[str, Any]:
    """A two-speaker transcription JSON in the WhisperKit shape."""
    return {
        "language": "en",
        "text": " Hello world. How are you? Fine, thanks.",
        "segments": [
            {
                "id": "s1",
                "start": 0.0,
                "end": 1.8,
                "text": " Hello world. How are you?",
                "speakerId": "A",
                "words": [
                    {"word": " Hello", "start": 0.0, "end": 0.4},
                    {"word": " world.", "start": 0.4, "end": 0.8},
                    {"word": " How", "start": 1.0, "end": 1.2},
                    {"word": " are", "start": 1.2, "end": 1.4},
                    {"word": " you?", "start": 1.4, "end": 1.8},
                ],
            },
            {
                "id": "s2",
                "start": 2.0,
                "end": 3.0,
                "text": " Fine, thanks.",
                "speakerId": "B",
                "words": [
                    {"id": "b0", "text": " Fine,", "start": 2.0, "end": 2.5},
                    {"id": "b1", "text": " thanks.", "start": 2.5, "end": 3.0},
                ],
            },
        ],
    }
