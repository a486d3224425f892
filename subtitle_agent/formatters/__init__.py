"""Registry of output formats selectable with --formats.

HOW: FORMATTERS maps a CLI key to a formatter class; callers create an
instance per run, e.g. ``FORMATTERS["srt"]()``.

RULES:
- Keys are snake_case and double as --formats values
- Values are BaseFormatter subclasses, never instances
- Importing this package has no side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from subtitle_agent.formatters.plain_text import PlainTextFormatter
from subtitle_agent.formatters.srt import SRTFormatter
from subtitle_agent.formatters.subtitle_json import SubtitleJSONFormatter

if TYPE_CHECKING:
    from subtitle_agent.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "srt": SRTFormatter,
    "plain_text": PlainTextFormatter,
    "subtitle_json": SubtitleJSONFormatter,
}
