"""Prompt text and request payloads for correction and translation.

WHY: Prompts change far more often than transport code. Keeping them as
plain functions returning strings/messages makes them easy to read,
tweak, and test without HTTP.

RULES:
- Correction asks for paragraph breaks as blank lines; the client
  collapses them to single newlines
- Translation payloads are JSON with the target language, the items to
  translate, and previously translated items as context
- Blank segment texts are never sent
"""

from __future__ import annotations

import json
from typing import Any

from subtitle_agent.core.ir import Paragraph

CORRECTION_PROMPT = """You are a professional transcript editor. Please correct the following speech transcription text:

1. Fix spelling errors and typos
2. Remove filler words and speech disfluencies
3. Add proper punctuation marks
4. Add paragraph breaks using double newlines where appropriate for logical sections
5. Do NOT add any content that doesn't exist in the original text
6. Maintain the original meaning and context

## Original text
{text}

## Output format
Please provide only the corrected text without any explanations or additional comments:"""

PARAGRAPH_SYSTEM_PROMPT = """You are a professional subtitle translator. Detect the source language automatically and translate every paragraph into {target_language}.

Guidelines:
- Preserve timing references, numbers, and proper nouns.
- Keep translations concise and natural for spoken dialogue.
- Honor terminology that already appeared in previous translations.
- Output only the translation text (no brackets or speaker names unless they exist in the original).

Format:
- Respond strictly as a JSON array.
- Each entry must be {{"id": string, "translation": string}}.
- Cover every provided id and do not emit additional fields."""

SEGMENT_SYSTEM_PROMPT = """You are a professional subtitle translator. Translate each segment faithfully into {target_language}.

Guidelines:
- Preserve speaker cues, timing references, numbers, and proper nouns.
- Keep translations concise and natural for spoken dialogue.
- Honor terminology that already appeared in the provided paragraph-level translation.
- Maintain consistency with terminology that appeared in previous segments.
- When responding, include the original text for every segment exactly as provided.

Format:
- Respond strictly as a JSON array.
- Each entry must be {{"id": string, "segments": Array<{{"id": string, "text": string, "translation": string}}>}}.
- Ensure segment ids match the provided ids and the text value exactly matches the original segment text.
- Cover every provided segment id and do not emit additional fields."""


def build_correction_prompt(text: str) -> str:
    return CORRECTION_PROMPT.format(text=text)


def _paragraph_entries(paragraphs: list[Paragraph]) -> list[dict[str, Any]]:
    entries = []
    for paragraph in paragraphs:
        entry: dict[str, Any] = {"id": paragraph.id, "text": (paragraph.text or "").strip()}
        if paragraph.translation:
            entry["translation"] = paragraph.translation.strip()
        entries.append(entry)
    return entries


def _segment_entries(paragraphs: list[Paragraph]) -> list[dict[str, Any]]:
    entries = []
    for paragraph in paragraphs:
        segments = []
        for index, segment in enumerate(paragraph.segments or []):
            text = (segment.text or "").strip()
            if not text:
                continue
            item: dict[str, Any] = {
                "id": segment.id or f"{paragraph.id}-segment-{index}",
                "text": text,
            }
            if segment.translation:
                item["translation"] = segment.translation.strip()
            segments.append(item)
        if not segments:
            continue
        entry: dict[str, Any] = {"id": paragraph.id, "segments": segments}
        if paragraph.translation and paragraph.translation.strip():
            entry["translation"] = paragraph.translation.strip()
        entries.append(entry)
    return entries


def _messages(system: str, intro: str, payload: dict[str, Any]) -> list[dict[str, str]]:
    body = json.dumps(payload, ensure_ascii=False, indent=2)
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f"{intro}\n{body}"},
    ]


def build_paragraph_translation_messages(
    pending: list[Paragraph], context: list[Paragraph], target_language: str
) -> list[dict[str, str]]:
    payload: dict[str, Any] = {
        "targetLanguage": target_language,
        "paragraphs": _paragraph_entries(pending),
    }
    if context:
        payload["previousTranslations"] = _paragraph_entries(context)
    return _messages(
        PARAGRAPH_SYSTEM_PROMPT.format(target_language=target_language),
        "Translate the following paragraphs using the provided context:",
        payload,
    )


def build_segment_translation_messages(
    pending: list[Paragraph], context: list[Paragraph], target_language: str
) -> list[dict[str, str]] | None:
    """Build segment translation messages, or None if nothing needs sending."""
    paragraphs = _segment_entries(pending)
    if not paragraphs:
        return None
    payload: dict[str, Any] = {"targetLanguage": target_language, "paragraphs": paragraphs}
    previous = _segment_entries(context)
    if previous:
        payload["previousSegments"] = previous
    return _messages(
        SEGMENT_SYSTEM_PROMPT.format(target_language=target_language),
        "Translate the following segments using the provided context:",
        payload,
    )
