"""Formatter interface shared by every output format.

WHY: SRT, plain text, and subtitle JSON all read the same Subtitle and
write a different file. The CLI loops over whichever formatters the user
picked and saves what they return, without knowing any format details.

HOW: A formatter subclasses BaseFormatter, names itself, and turns a
Subtitle into FormatterOutput records (file suffix, text content, MIME
type). The CLI prefixes each suffix with the input file's stem.

RULES:
- format() returns a list; a format may write several files
- Suffixes start with "-" and carry the extension ("-subtitle.srt")
- The Subtitle passed in is read-only for formatters
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from subtitle_agent.core.ir import Subtitle


@dataclass
class FormatterOutput:
    """A single file's worth of formatted output.

    Attributes:
        suffix: Appended to the input stem, so "-subtitle.srt" turns
            "talk.json" into "talk-subtitle.srt".
        content: Text written as UTF-8.
        media_type: MIME type of content, e.g. ``"application/x-subrip"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Base class for Subtitle output formats.

    New formats live in their own module under formatters/ and are added
    to the FORMATTERS registry in formatters/__init__.py.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name used in CLI status lines, e.g. 'SRT Subtitles'."""

    @abstractmethod
    def format(self, subtitle: Subtitle) -> list[FormatterOutput]:
        """Render the subtitle into one or more output files."""
