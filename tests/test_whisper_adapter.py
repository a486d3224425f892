"""Unit tests for adapters/whisper_adapter.py — transcription JSON import."""

import copy

from subtitle_agent.adapters.whisper_adapter import import_segments, import_whisper


class TestImportWhisper:
    def test_reads_language_text_and_segments(self, whisper_document):
        transcript = import_whisper(whisper_document)

        assert transcript.language == "en"
        assert transcript.text.startswith(" Hello")
        assert [s.id for s in transcript.segments] == ["s1", "s2"]
        assert [s.speaker_id for s in transcript.segments] == ["A", "B"]

    def test_words_property_flattens_segments(self, whisper_document):
        transcript = import_whisper(whisper_document)
        assert [w.text for w in transcript.words] == [
            " Hello", " world.", " How", " are", " you?", " Fine,", " thanks.",
        ]

    def test_missing_language_defaults_to_unknown(self):
        assert import_whisper({"segments": []}).language == "unknown"

    def test_input_not_mutated(self, whisper_document):
        before = copy.deepcopy(whisper_document)
        import_whisper(whisper_document)
        assert whisper_document == before


class TestImportSegments:
    def test_word_ids_kept_or_generated(self, whisper_document):
        segments = import_segments(whisper_document)
        assert [w.id for w in segments[1].words] == ["b0", "b1"]
        assert all(w.id for w in segments[0].words)

    def test_words_resynced_with_segment_text(self):
        data = {
            "segments": [{
                "start": 0.0,
                "end": 2.0,
                "text": " Hello, world.",
                "words": [
                    {"word": " Helo", "start": 0.0, "end": 1.0},
                    {"word": " world.", "start": 1.0, "end": 2.0},
                ],
            }]
        }
        segment = import_segments(data)[0]
        assert [(w.text, w.start, w.end) for w in segment.words] == [
            (" Hello,", 0.0, 1.0),
            (" world.", 1.0, 2.0),
        ]
        assert segment.id
        assert segment.speaker_id is None

    def test_multi_token_engine_word_is_split(self):
        data = {
            "segments": [{
                "text": "你好",
                "start": 0.0,
                "end": 2.0,
                "words": [{"word": "你好", "start": 0.0, "end": 2.0}],
            }]
        }
        segment = import_segments(data)[0]
        assert [(w.text, w.start, w.end) for w in segment.words] == [("你", 0.0, 1.0), ("好", 1.0, 2.0)]

    def test_segment_without_words(self):
        segment = import_segments({"segments": [{"text": " silence", "start": 1, "end": 2}]})[0]
        assert segment.words == []
        assert segment.text == " silence"
