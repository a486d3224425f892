"""Speaker grouping and sentence-level segmentation.

WHY: Correction runs per speaker so that a paragraph never spans two
speakers. Segment-level translation and SRT output need each paragraph
split into sentences, each with its own timing.

HOW: group_segments_by_speaker() cuts the transcription segments into
maximal runs of equal speaker_id. create_segments_from_paragraph() walks
a paragraph's words and closes a segment after every word that ends a
sentence.

RULES:
- Existing paragraph segments are never rebuilt, only cloned
- Segment ids are "{paragraph_id}-segment-{n}", n counting kept segments
- Whitespace-only segments are skipped
- A paragraph with text but no words becomes a single segment
"""

from __future__ import annotations

import copy
import dataclasses

from subtitle_agent.core.ir import Paragraph, Segment, Word
from subtitle_agent.core.tokenizer import is_end_of_sentence, join_words_text


def group_segments_by_speaker(segments: list[Segment]) -> list[list[Segment]]:
    """Partition segments into maximal consecutive runs sharing a speaker_id."""
    groups: list[list[Segment]] = []
    for segment in segments:
        if groups and groups[-1][0].speaker_id == segment.speaker_id:
            groups[-1].append(segment)
        else:
            groups.append([segment])
    return groups


def _segment_id(paragraph_id: str, index: int) -> str:
    return f"{paragraph_id}-segment-{index}"


def _source_words(paragraph: Paragraph) -> list[Word]:
    if paragraph.words:
        return paragraph.words
    text = (paragraph.text or "").strip()
    if not text:
        return []
    return [Word(id=f"{paragraph.id}-word-0", text=text, start=paragraph.start, end=paragraph.end)]


def create_segments_from_paragraph(paragraph: Paragraph) -> list[Segment]:
    """Split a paragraph into sentence segments.

    Returns a deep copy of the paragraph's segments when it already has
    some; otherwise builds them from its words.
    """
    if paragraph.segments:
        return copy.deepcopy(paragraph.segments)

    segments: list[Segment] = []
    current: list[Word] = []

    def _flush() -> None:
        if not current:
            return
        words = [dataclasses.replace(w) for w in current]
        current.clear()
        text = join_words_text(words).strip()
        if not text:
            return
        segments.append(
            Segment(
                id=_segment_id(paragraph.id, len(segments)),
                start=words[0].start,
                end=words[-1].end,
                text=text,
                words=words,
            )
        )

    for word in _source_words(paragraph):
        current.append(word)
        if is_end_of_sentence(word.text):
            _flush()
    _flush()

    return segments


def ensure_paragraph_segments(paragraphs: list[Paragraph]) -> list[Paragraph]:
    """Return paragraphs with sentence segments filled in.

    Paragraphs that yield no segments are returned as they are; the others
    are shallow copies carrying the new segment list.
    """
    result: list[Paragraph] = []
    for paragraph in paragraphs:
        segments = create_segments_from_paragraph(paragraph)
        if not segments:
            result.append(paragraph)
        else:
            result.append(dataclasses.replace(paragraph, segments=segments))
    return result
