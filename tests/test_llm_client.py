"""Unit tests for llm/client.py — chat completions client and response parsing.

WHY: The client is the only code that talks to the network. Its failure
policy matters: correction failures must surface as success=False,
translation failures must degrade to "nothing translated", and only
transient errors may be retried.

HOW: httpx.MockTransport stands in for the API. Retry intervals are set
to zero so backoff sleeps do not slow the suite.

RULES:
- No real HTTP requests
- Every test runs the client inside its async context manager
"""

import asyncio
import json

import httpx
import pytest

from subtitle_agent.core.ir import Paragraph, Segment
from subtitle_agent.llm.client import LLMAPIError, LLMClient, extract_json_array


def _reply(content: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class _Recorder:
    """MockTransport handler that replays responses and records requests."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


def _client(recorder: _Recorder, **kwargs) -> LLMClient:
    return LLMClient(
        api_key="test-key",
        base_url="https://llm.example/v1/",
        model="correct-model",
        translation_model="translate-model",
        target_language="French",
        retry_initial_interval_s=0,
        transport=httpx.MockTransport(recorder),
        **kwargs,
    )


async def _with_client(recorder, fn):
    async with _client(recorder) as llm:
        return await fn(llm)


def _paragraph(pid: str, text: str) -> Paragraph:
    return Paragraph(id=pid, start=0.0, end=1.0, text=text, words=[])


class TestExtractJsonArray:
    def test_bare_array(self):
        assert extract_json_array('[{"id": "a"}]') == [{"id": "a"}]

    def test_fenced_array(self):
        assert extract_json_array('```json\n[{"id": "a"}]\n```') == [{"id": "a"}]

    def test_array_with_surrounding_prose(self):
        assert extract_json_array('Here you go: [1, 2] done') == [1, 2]

    def test_object_wrapping_one_array(self):
        assert extract_json_array('{"paragraphs": [{"id": "a"}]}') == [{"id": "a"}]

    def test_object_without_single_array_raises(self):
        with pytest.raises(ValueError):
            extract_json_array('{"a": [], "b": []}')

    def test_no_array_raises(self):
        with pytest.raises(ValueError):
            extract_json_array("I cannot help with that.")

    def test_malformed_json_raises(self):
        with pytest.raises(ValueError):
            extract_json_array('[{"id": "a",]')


class TestClientLifecycle:
    def test_requires_context_manager(self):
        llm = _client(_Recorder())
        with pytest.raises(RuntimeError, match="async context manager"):
            asyncio.run(llm.correct_text("hi"))

    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        with pytest.raises(ValueError, match="LLM_API_KEY"):
            LLMClient()

    def test_sends_auth_header_and_model(self):
        recorder = _Recorder(_reply("fixed"))
        asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("fxied")))

        request = recorder.requests[0]
        assert request.url == "https://llm.example/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        body = recorder.body()
        assert body["model"] == "correct-model"
        assert body["stream"] is False
        assert "temperature" not in body
        assert "fxied" in body["messages"][0]["content"]


class TestCorrectText:
    def test_collapses_double_newlines(self):
        recorder = _Recorder(_reply("First paragraph.\n\nSecond one."))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))

        assert result.success
        assert result.original_text == "raw"
        assert result.corrected_text == "First paragraph.\nSecond one."

    def test_client_error_is_not_retried(self):
        recorder = _Recorder(httpx.Response(400, text="bad request"))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))

        assert not result.success
        assert result.corrected_text == "raw"
        assert "400" in result.error
        assert len(recorder.requests) == 1

    def test_server_error_is_retried(self):
        recorder = _Recorder(httpx.Response(503, text="busy"), _reply("ok"))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))

        assert result.success
        assert result.corrected_text == "ok"
        assert len(recorder.requests) == 2

    def test_gives_up_after_max_retries(self):
        recorder = _Recorder(*[httpx.Response(429, text="slow down") for _ in range(4)])
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))

        assert not result.success
        assert len(recorder.requests) == 4

    def test_response_without_choices_fails(self):
        recorder = _Recorder(httpx.Response(200, json={"choices": []}))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))
        assert not result.success

    def test_normalizes_line_breaks(self):
        recorder = _Recorder(_reply("One. \nTwo.\r\n\r\nThree \t\n four."))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))
        assert result.corrected_text == "One.\nTwo.\nThree\nfour."

    def test_non_json_body_fails(self):
        recorder = _Recorder(httpx.Response(200, text="<html>proxy error</html>"))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))

        assert not result.success
        assert result.corrected_text == "raw"
        assert "not JSON" in result.error
        assert len(recorder.requests) == 1

    def test_non_object_json_fails(self):
        recorder = _Recorder(httpx.Response(200, json=["not", "an", "object"]))
        result = asyncio.run(_with_client(recorder, lambda llm: llm.correct_text("raw")))
        assert not result.success


class TestTranslateParagraphs:
    def test_returns_translated_copies(self):
        content = json.dumps([
            {"id": "p0", "translation": " Bonjour. "},
            {"id": "p1", "translation": "Au revoir."},
        ])
        recorder = _Recorder(_reply(f"```json\n{content}\n```"))
        pending = [_paragraph("p0", "Hello."), _paragraph("p1", "Goodbye.")]
        context = [Paragraph(id="c", start=0, end=1, text="Hi.", words=[], translation="Salut.")]

        result = asyncio.run(_with_client(recorder, lambda llm: llm.translate_paragraphs(pending, context)))

        assert [(p.id, p.translation) for p in result] == [("p0", "Bonjour."), ("p1", "Au revoir.")]
        assert all(p.translation is None for p in pending)

        body = recorder.body()
        assert body["model"] == "translate-model"
        assert body["temperature"] == 0.2
        assert "French" in body["messages"][0]["content"]
        payload = json.loads(body["messages"][1]["content"].split("\n", 1)[1])
        assert payload["targetLanguage"] == "French"
        assert [p["id"] for p in payload["paragraphs"]] == ["p0", "p1"]
        assert payload["previousTranslations"] == [{"id": "c", "text": "Hi.", "translation": "Salut."}]

    def test_invalid_and_unknown_items_are_dropped(self):
        content = json.dumps([
            {"id": "p0", "translation": ""},
            {"id": "p1"},
            {"id": "zz", "translation": "?"},
            {"id": "p2", "translation": "Oui."},
        ])
        recorder = _Recorder(_reply(content))
        pending = [_paragraph("p0", "a"), _paragraph("p1", "b"), _paragraph("p2", "Yes.")]

        result = asyncio.run(_with_client(recorder, lambda llm: llm.translate_paragraphs(pending, [])))

        assert [(p.id, p.translation) for p in result] == [("p2", "Oui.")]

    def test_unparseable_reply_returns_empty(self):
        recorder = _Recorder(_reply("Sorry, I can't do that."))
        result = asyncio.run(
            _with_client(recorder, lambda llm: llm.translate_paragraphs([_paragraph("p0", "a")], []))
        )
        assert result == []

    def test_api_failure_returns_empty(self):
        recorder = _Recorder(*[httpx.Response(500, text="down") for _ in range(3)])
        result = asyncio.run(
            _with_client(recorder, lambda llm: llm.translate_paragraphs([_paragraph("p0", "a")], []))
        )
        assert result == []
        assert len(recorder.requests) == 3

    def test_nothing_pending_makes_no_request(self):
        recorder = _Recorder()
        result = asyncio.run(_with_client(recorder, lambda llm: llm.translate_paragraphs([], [])))
        assert result == []
        assert recorder.requests == []


class TestTranslateSegments:
    def test_parses_segment_results(self):
        content = json.dumps([
            {"id": "p0", "segments": [
                {"id": "p0-segment-0", "text": "One.", "translation": "Un."},
                {"id": "p0-segment-1", "text": "Two.", "translation": "Deux."},
            ]},
            {"id": "p1", "segments": []},
        ])
        recorder = _Recorder(_reply(content))
        paragraph = _paragraph("p0", "One. Two.")
        paragraph.translation = "Un. Deux."
        paragraph.segments = [
            Segment(id="p0-segment-0", start=0, end=1, text="One."),
            Segment(id="p0-segment-1", start=1, end=2, text="Two."),
        ]

        result = asyncio.run(_with_client(recorder, lambda llm: llm.translate_segments([paragraph], [])))

        assert [r.id for r in result] == ["p0"]
        assert [(s.id, s.translation) for s in result[0].segments] == [
            ("p0-segment-0", "Un."),
            ("p0-segment-1", "Deux."),
        ]
        payload = json.loads(recorder.body()["messages"][1]["content"].split("\n", 1)[1])
        assert payload["paragraphs"][0]["translation"] == "Un. Deux."
        assert "previousSegments" not in payload

    def test_blank_segments_make_no_request(self):
        recorder = _Recorder()
        paragraph = _paragraph("p0", "")
        paragraph.segments = [Segment(id="s", start=0, end=1, text="   ")]

        result = asyncio.run(_with_client(recorder, lambda llm: llm.translate_segments([paragraph], [])))

        assert result == []
        assert recorder.requests == []


class TestLLMAPIError:
    @pytest.mark.parametrize("status,retryable", [(400, False), (401, False), (429, True), (500, True), (503, True)])
    def test_retryable(self, status, retryable):
        assert LLMAPIError(status, "x").retryable is retryable
