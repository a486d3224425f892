"""Subtitle JSON formatter — the full document, schema-validated.

WHY: Other tools (and later runs of this one) need the complete result:
paragraphs with word timing, speakers, sentence segments, and
translations. The JSON mirrors Subtitle.to_dict() so it loads back with
Subtitle.from_dict().

HOW: Serializes the Subtitle, validates it against SUBTITLE_SCHEMA with
jsonschema, and pretty-prints it.

RULES:
- Schema validation is mandatory — raises on invalid output
- Non-ASCII text is written as-is (ensure_ascii=False)
- Output suffix: "-subtitle.json"; media type "application/json"
"""

from __future__ import annotations

import json
from typing import Any

import jsonschema

from subtitle_agent.core.ir import Subtitle
from subtitle_agent.formatters.base import BaseFormatter, FormatterOutput

_WORD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "text", "start", "end"],
    "properties": {
        "id": {"type": "string"},
        "text": {"type": "string"},
        "start": {"type": "number"},
        "end": {"type": "number"},
    },
}

_SEGMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "start", "end", "text", "words"],
    "properties": {
        "id": {"type": "string"},
        "start": {"type": "number"},
        "end": {"type": "number"},
        "text": {"type": "string"},
        "words": {"type": "array", "items": _WORD_SCHEMA},
        "speakerId": {"type": "string"},
        "translation": {"type": "string"},
    },
}

SUBTITLE_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["id", "title", "filename", "language", "paragraphs"],
    "properties": {
        "id": {"type": "string"},
        "title": {"type": "string"},
        "filename": {"type": "string"},
        "language": {"type": "string"},
        "targetLanguage": {"type": "string"},
        "paragraphs": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "start", "end", "text", "words"],
                "properties": {
                    "id": {"type": "string"},
                    "start": {"type": "number"},
                    "end": {"type": "number"},
                    "text": {"type": "string"},
                    "words": {"type": "array", "items": _WORD_SCHEMA},
                    "speakerId": {"type": "string"},
                    "translation": {"type": "string"},
                    "segments": {"type": "array", "items": _SEGMENT_SCHEMA},
                },
            },
        },
    },
}


class SubtitleJSONFormatter(BaseFormatter):
    """Formatter that writes the Subtitle document as validated JSON."""

    @property
    def name(self) -> str:
        return "Subtitle JSON"

    def format(self, subtitle: Subtitle) -> list[FormatterOutput]:
        """Serialize and validate the subtitle.

        Raises:
            jsonschema.ValidationError: If the document does not conform
                to SUBTITLE_SCHEMA.
        """
        output = subtitle.to_dict()
        jsonschema.validate(instance=output, schema=SUBTITLE_SCHEMA)

        return [
            FormatterOutput(
                suffix="-subtitle.json",
                content=json.dumps(output, indent=2, ensure_ascii=False),
                media_type="application/json",
            )
        ]
