"""Async HTTP client for an OpenAI-compatible chat completions API.

WHY: The pipelines need three capabilities (text correction, paragraph
translation, segment translation) from a text-generation model. This
module implements all three behind one client so callers (CLI, tests)
never deal with HTTP, prompts, or response parsing.

HOW: Uses httpx.AsyncClient against POST {base_url}/chat/completions.
The LLMClient is an async context manager: enter it to get an
authenticated client, exit to close the connection pool. Each capability
is an async method whose signature matches the protocols in
llm.protocols, so bound methods can be passed straight to the pipelines.

RULES:
- Always use the async context manager (async with LLMClient(...) as llm:)
- Retries use exponential backoff: 2s initial, 1.5x factor, 15s max
- Only transport errors, 429 and 5xx responses are retried
- correct_text never raises on API failure: it returns success=False and
  the original text
- translate_* never raise on API or parse failure: they log and return
  an empty list, so every item stays pending
- Translation JSON is validated item by item with pydantic; invalid items
  are dropped
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
import regex
from pydantic import BaseModel, ValidationError

from subtitle_agent.config import (
    LLM_BASE_URL,
    LLM_MODEL,
    LLM_TIMEOUT_S,
    LLM_TRANSLATION_MODEL,
    TRANSLATION_TARGET_LANGUAGE,
    load_api_key,
)
from subtitle_agent.core.ir import Paragraph
from subtitle_agent.llm.models import (
    CorrectionResult,
    ParagraphTranslation,
    SegmentTranslationResult,
)
from subtitle_agent.llm.prompts import (
    build_correction_prompt,
    build_paragraph_translation_messages,
    build_segment_translation_messages,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_RETRY_INITIAL_INTERVAL_S = 2.0
_RETRY_BACKOFF_FACTOR = 1.5
_RETRY_MAX_INTERVAL_S = 15.0

CORRECTION_MAX_RETRIES = 3
TRANSLATION_MAX_RETRIES = 2
TRANSLATION_TEMPERATURE = 0.2


class LLMAPIError(Exception):
    """Raised when the chat completions API returns an error response.

    RULES:
    - Always include status_code and message
    - message is the response body text or a summary
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"LLM API error {status_code}: {message}")

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


_LINE_BREAK_RE = regex.compile(r"[ \t]*(?:\r\n?|\n)[ \t]*")
_BREAK_RUN_RE = regex.compile(r"\n{2,}")


def _normalize_breaks(text: str) -> str:
    return _BREAK_RUN_RE.sub("\n", _LINE_BREAK_RE.sub("\n", text))


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def extract_json_array(content: str) -> list[Any]:
    """Pull the JSON array out of a model reply.

    Accepts a bare array, an array inside a markdown code fence, or an
    object wrapping exactly one array value.

    Raises:
        ValueError: If no array can be found or the JSON is malformed.
    """
    text = _strip_code_fence(content)
    start, end = text.find("["), text.rfind("]")
    if text.startswith("{"):
        parsed = json.loads(text)
        arrays = [v for v in parsed.values() if isinstance(v, list)]
        if len(arrays) == 1:
            return arrays[0]
        raise ValueError("Response object does not wrap a single array")
    if start == -1 or end < start:
        raise ValueError(f"Response is not a JSON array: {text[:200]}")
    parsed = json.loads(text[start:end + 1])
    if not isinstance(parsed, list):
        raise ValueError("Response JSON is not an array")
    return parsed


def _validate_items(items: list[Any], model: type[BaseModel]) -> list[Any]:
    valid = []
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning("Dropping invalid %s item: %s", model.__name__, exc.errors()[:1])
    return valid


class LLMClient:
    """Async client implementing the correction and translation capabilities.

    WHY: One object carries auth, models, target language, and the HTTP
    pool; the CLI opens it once and hands its bound methods to the
    pipelines.

    RULES:
    - Use as: async with LLMClient() as llm: ...
    - api_key defaults to load_api_key() from .env
    - base_url / model / translation_model / target_language default to
      the values in config
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        translation_model: str | None = None,
        target_language: str | None = None,
        retry_initial_interval_s: float = _RETRY_INITIAL_INTERVAL_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or LLM_BASE_URL).rstrip("/")
        self.model = model or LLM_MODEL
        self.translation_model = translation_model or LLM_TRANSLATION_MODEL
        self.target_language = target_language or TRANSLATION_TARGET_LANGUAGE
        self._retry_initial_interval_s = retry_initial_interval_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> LLMClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=httpx.Timeout(LLM_TIMEOUT_S, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "LLMClient must be used as an async context manager: "
                "async with LLMClient() as llm: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post_chat(self, body: dict[str, Any]) -> str:
        client = self._ensure_client()
        resp = await client.post("/chat/completions", json=body)
        if resp.status_code != 200:
            raise LLMAPIError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError:
            raise LLMAPIError(resp.status_code, f"Response is not JSON: {resp.text[:200]}") from None

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise LLMAPIError(resp.status_code, f"Response has no choices: {resp.text[:200]}")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise LLMAPIError(resp.status_code, f"Response choice has no message: {resp.text[:200]}")
        content = message.get("content")
        return content if isinstance(content, str) else ""

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_retries: int,
        temperature: float | None = None,
    ) -> str:
        """Send one chat completion request and return the reply text.

        Retries transport errors, 429 and 5xx up to ``max_retries`` times
        with exponential backoff.

        Raises:
            LLMAPIError: On a non-retryable error or when retries run out.
            httpx.HTTPError: On a transport error when retries run out.
        """
        body: dict[str, Any] = {"model": model, "messages": messages, "stream": False}
        if temperature is not None:
            body["temperature"] = temperature

        interval = self._retry_initial_interval_s
        attempt = 0
        while True:
            try:
                return await self._post_chat(body)
            except LLMAPIError as exc:
                if not exc.retryable or attempt >= max_retries:
                    raise
                logger.warning("LLM request failed (%s); retry %d/%d", exc, attempt + 1, max_retries)
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    raise
                logger.warning("LLM transport error (%s); retry %d/%d", exc, attempt + 1, max_retries)

            attempt += 1
            await asyncio.sleep(interval)
            interval = min(interval * _RETRY_BACKOFF_FACTOR, _RETRY_MAX_INTERVAL_S)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def correct_text(self, text: str) -> CorrectionResult:
        """Correct transcription text and insert paragraph breaks.

        RULES:
        - Line breaks are normalized: CRLF and CR become newlines, blanks around a
          break are dropped, and runs of breaks collapse to one
        - On failure, corrected_text is the original text and success=False
        """
        logger.info("Correction request: model=%s chars=%d", self.model, len(text))
        try:
            content = await self.chat(
                [{"role": "user", "content": build_correction_prompt(text)}],
                model=self.model,
                max_retries=CORRECTION_MAX_RETRIES,
            )
        except (LLMAPIError, httpx.HTTPError) as exc:
            logger.error("Correction failed: %s", exc)
            return CorrectionResult(
                original_text=text, corrected_text=text, success=False, error=str(exc)
            )

        corrected = _normalize_breaks(content)
        logger.debug("Correction response: %r", corrected)
        return CorrectionResult(original_text=text, corrected_text=corrected, success=True)

    async def _translate(self, messages: list[dict[str, str]], model: type[BaseModel]) -> list[Any]:
        try:
            content = await self.chat(
                messages,
                model=self.translation_model,
                max_retries=TRANSLATION_MAX_RETRIES,
                temperature=TRANSLATION_TEMPERATURE,
            )
            items = extract_json_array(content)
        except (LLMAPIError, httpx.HTTPError, ValueError) as exc:
            logger.error("Translation failed: %s", exc)
            return []
        return _validate_items(items, model)

    async def translate_paragraphs(
        self, pending: list[Paragraph], context: list[Paragraph]
    ) -> list[Paragraph]:
        """Translate paragraphs; returns copies carrying the translations."""
        if not pending:
            return []

        logger.info(
            "Paragraph translation request: model=%s target=%s paragraphs=%d",
            self.translation_model, self.target_language, len(pending),
        )
        messages = build_paragraph_translation_messages(pending, context, self.target_language)
        translations = {
            item.id: item.translation.strip()
            for item in await self._translate(messages, ParagraphTranslation)
        }

        result = []
        for paragraph in pending:
            if paragraph.id in translations:
                copy = paragraph.clone()
                copy.translation = translations[paragraph.id]
                result.append(copy)
        logger.info("Paragraph translation response: %d/%d translated", len(result), len(pending))
        return result

    async def translate_segments(
        self, pending: list[Paragraph], context: list[Paragraph]
    ) -> list[SegmentTranslationResult]:
        """Translate the segments of each pending paragraph."""
        messages = build_segment_translation_messages(pending, context, self.target_language)
        if messages is None:
            return []

        logger.info(
            "Segment translation request: model=%s target=%s paragraphs=%d",
            self.translation_model, self.target_language, len(pending),
        )
        results = await self._translate(messages, SegmentTranslationResult)
        logger.info("Segment translation response: %d paragraph(s)", len(results))
        return results
