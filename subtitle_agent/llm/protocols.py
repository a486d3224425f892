"""Capability protocols consumed by the pipelines.

WHY: The pipelines must not depend on one LLM vendor or on HTTP at all;
tests drive them with plain async functions. Each capability is a single
async callable.

RULES:
- Any async callable with the matching signature satisfies a protocol
  (bound methods of LLMClient, mocks, closures)
"""

from __future__ import annotations

from typing import Protocol

from subtitle_agent.core.ir import Paragraph
from subtitle_agent.llm.models import CorrectionResult, SegmentTranslationResult


class TextCorrector(Protocol):
    async def __call__(self, text: str) -> CorrectionResult: ...


class ParagraphTranslator(Protocol):
    async def __call__(
        self, pending: list[Paragraph], context: list[Paragraph]
    ) -> list[Paragraph]: ...


class SegmentTranslator(Protocol):
    async def __call__(
        self, pending: list[Paragraph], context: list[Paragraph]
    ) -> list[SegmentTranslationResult]: ...
