"""Unit tests for all formatter modules.

WHY: Each formatter turns the Subtitle into a file users open directly.
A malformed SRT or a JSON document that does not load back is a broken
deliverable.

HOW: Tests run every formatter on a small two-speaker subtitle, with and
without translations, and check the exact output text.

RULES:
- JSON output is validated against SUBTITLE_SCHEMA and loaded back
- SRT cues are numbered from 1 in paragraph order
"""

import json

import jsonschema
import pytest

from subtitle_agent.core.ir import Subtitle
from subtitle_agent.core.segments import ensure_paragraph_segments
from subtitle_agent.formatters import FORMATTERS
from subtitle_agent.formatters.base import BaseFormatter
from subtitle_agent.formatters.plain_text import PlainTextFormatter
from subtitle_agent.formatters.srt import SRTFormatter, format_timestamp
from subtitle_agent.formatters.subtitle_json import SUBTITLE_SCHEMA, SubtitleJSONFormatter


@pytest.fixture
def subtitle(make_paragraph):
    paragraphs = [
        make_paragraph(["Hello", " world.", " How", " are", " you?"], "p0", "A"),
        make_paragraph(["Fine."], "p1", "B"),
        make_paragraph(["Great."], "p2", "B"),
    ]
    return Subtitle(id="sub", title="demo", filename="demo.json", language="en", paragraphs=paragraphs)


class TestRegistry:
    def test_all_formatters_registered(self):
        assert set(FORMATTERS) == {"srt", "plain_text", "subtitle_json"}
        assert all(issubclass(cls, BaseFormatter) for cls in FORMATTERS.values())


class TestFormatTimestamp:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00:00:00,000"),
            (1.5, "00:00:01,500"),
            (3661.007, "01:01:01,007"),
            (59.9996, "00:01:00,000"),
            (-1, "00:00:00,000"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_timestamp(seconds) == expected


class TestSRTFormatter:
    def test_one_cue_per_sentence(self, subtitle):
        output = SRTFormatter().format(subtitle)[0]

        assert output.suffix == "-subtitle.srt"
        assert output.media_type == "application/x-subrip"
        assert output.content == (
            "1\n00:00:00,000 --> 00:00:02,000\nHello world.\n\n"
            "2\n00:00:02,000 --> 00:00:05,000\nHow are you?\n\n"
            "3\n00:00:00,000 --> 00:00:01,000\nFine.\n\n"
            "4\n00:00:00,000 --> 00:00:01,000\nGreat.\n"
        )

    def test_translation_on_second_line(self, subtitle):
        subtitle.paragraphs = ensure_paragraph_segments(subtitle.paragraphs)
        subtitle.paragraphs[1].segments[0].translation = " Bien. "

        content = SRTFormatter().format(subtitle)[0].content

        assert "3\n00:00:00,000 --> 00:00:01,000\nFine.\nBien.\n\n" in content

    def test_does_not_modify_subtitle(self, subtitle):
        SRTFormatter().format(subtitle)
        assert all(p.segments is None for p in subtitle.paragraphs)

    def test_empty_subtitle(self):
        empty = Subtitle(id="e", title="e", filename="e", language="en")
        assert SRTFormatter().format(empty)[0].content == ""


class TestPlainTextFormatter:
    def test_speaker_headers_on_change_only(self, subtitle):
        output = PlainTextFormatter().format(subtitle)[0]

        assert output.suffix == "-transcript.txt"
        assert output.content == (
            "Speaker A:\nHello world. How are you?\n\n"
            "Speaker B:\nFine.\n\n"
            "Great.\n"
        )

    def test_translation_follows_text(self, subtitle):
        subtitle.paragraphs[1].translation = "Bien."
        content = PlainTextFormatter().format(subtitle)[0].content
        assert "Speaker B:\nFine.\nBien.\n\n" in content

    def test_no_headers_without_speakers(self, subtitle):
        for paragraph in subtitle.paragraphs:
            paragraph.speaker_id = None
        content = PlainTextFormatter().format(subtitle)[0].content
        assert "Speaker" not in content


class TestSubtitleJSONFormatter:
    def test_valid_and_loads_back(self, subtitle):
        subtitle.target_language = "fr"
        subtitle.paragraphs = ensure_paragraph_segments(subtitle.paragraphs)
        subtitle.paragraphs[0].translation = "Bonjour le monde. Ça va ?"

        output = SubtitleJSONFormatter().format(subtitle)[0]
        data = json.loads(output.content)

        jsonschema.validate(instance=data, schema=SUBTITLE_SCHEMA)
        assert output.suffix == "-subtitle.json"
        assert output.media_type == "application/json"
        assert Subtitle.from_dict(data) == subtitle
        assert "Ça va" in output.content

    def test_invalid_document_raises(self, subtitle):
        subtitle.paragraphs[0].words[0].start = "zero"
        with pytest.raises(jsonschema.ValidationError):
            SubtitleJSONFormatter().format(subtitle)
