"""Capability result types and LLM response schemas.

WHY: The pipelines need typed results from the correction and translation
capabilities, and the JSON the model returns must be checked before any
of it is merged into a subtitle.

HOW: pydantic models. CorrectionResult is what a TextCorrector returns.
ParagraphTranslation and SegmentTranslationResult double as the response
schema the model's JSON is validated against.

RULES:
- Translations must be non-empty strings
- A segment result must carry at least one segment
- Unknown extra keys from the model are ignored
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CorrectionResult(BaseModel):
    """Outcome of one correction call.

    RULES:
    - success=False means corrected_text must not be used
    - error is set only on failure
    """

    original_text: str
    corrected_text: str
    success: bool
    error: str | None = None


class ParagraphTranslation(BaseModel):
    id: str = Field(..., description="Paragraph id")
    translation: str = Field(..., min_length=1)


class SegmentTranslation(BaseModel):
    id: str = Field(..., description="Segment id")
    text: str = Field("", description="Original segment text, copied from the input")
    translation: str = Field(..., min_length=1)


class SegmentTranslationResult(BaseModel):
    id: str = Field(..., description="Paragraph id")
    segments: list[SegmentTranslation] = Field(..., min_length=1)
