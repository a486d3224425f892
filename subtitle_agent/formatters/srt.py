"""SRT subtitle formatter — one cue per sentence segment, bilingual.

WHY: Video editors and players ingest SRT. Paragraphs are too long for
on-screen cues, so each sentence segment becomes its own cue; when a
segment has a translation it goes on a second line.

HOW: ensure_paragraph_segments() supplies sentence segments for every
paragraph (existing segments are kept, so segment translations survive).
Cues are numbered from 1 in paragraph order.

RULES:
- Timestamp format: HH:MM:SS,mmm (milliseconds rounded)
- Cue text: segment text, then translation on the next line if present
- Blank line between cues; output ends with a newline when non-empty
- Output suffix: "-subtitle.srt"; media type "application/x-subrip"
"""

from __future__ import annotations

from subtitle_agent.core.ir import Subtitle
from subtitle_agent.core.segments import ensure_paragraph_segments
from subtitle_agent.formatters.base import BaseFormatter, FormatterOutput


def format_timestamp(seconds: float) -> str:
    """Format float seconds as an SRT timestamp."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


class SRTFormatter(BaseFormatter):
    """Formatter that produces a bilingual sentence-level SRT file."""

    @property
    def name(self) -> str:
        return "SRT Subtitles"

    def format(self, subtitle: Subtitle) -> list[FormatterOutput]:
        cues: list[str] = []
        for paragraph in ensure_paragraph_segments(subtitle.paragraphs):
            for segment in paragraph.segments or []:
                lines = [segment.text]
                if segment.translation and segment.translation.strip():
                    lines.append(segment.translation.strip())
                cues.append(
                    "{index}\n{start} --> {end}\n{text}".format(
                        index=len(cues) + 1,
                        start=format_timestamp(segment.start),
                        end=format_timestamp(segment.end),
                        text="\n".join(lines),
                    )
                )

        content = "\n\n".join(cues)
        if content:
            content += "\n"

        return [
            FormatterOutput(
                suffix="-subtitle.srt",
                content=content,
                media_type="application/x-subrip",
            )
        ]
