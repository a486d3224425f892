"""Plain text transcript formatter with speaker-labeled paragraphs.

WHY: Editors need a simple, readable transcript for review — no
timecodes, just the corrected paragraphs, with their translations when
the subtitle has been translated.

HOW: Iterates the paragraphs in order. A "Speaker X:" header line is
written whenever the speaker changes (and the paragraph has one).
A translated paragraph is followed by its translation on the next line.

RULES:
- One block per paragraph, blank line between blocks
- Header only on speaker change, never for paragraphs without speaker
- Empty paragraphs are skipped
- No trailing whitespace on any line
- Output suffix: "-transcript.txt"; media type "text/plain"
"""

from __future__ import annotations

from subtitle_agent.core.ir import Subtitle
from subtitle_agent.formatters.base import BaseFormatter, FormatterOutput


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces speaker-labeled plain text paragraphs."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, subtitle: Subtitle) -> list[FormatterOutput]:
        blocks: list[str] = []
        previous_speaker: str | None = None

        for paragraph in subtitle.paragraphs:
            text = paragraph.text.strip()
            if not text:
                continue

            lines: list[str] = []
            if paragraph.speaker_id is not None and paragraph.speaker_id != previous_speaker:
                lines.append("Speaker {}:".format(paragraph.speaker_id))
            previous_speaker = paragraph.speaker_id

            lines.append(text)
            if paragraph.translation and paragraph.translation.strip():
                lines.append(paragraph.translation.strip())
            blocks.append("\n".join(lines))

        content = "\n\n".join(blocks)
        if content:
            content += "\n"

        return [
            FormatterOutput(
                suffix="-transcript.txt",
                content=content,
                media_type="text/plain",
            )
        ]
