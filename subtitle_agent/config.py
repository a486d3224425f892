"""Configuration constants and .env loading.

WHY: Centralizes the LLM endpoint, model names, target language, and
chunking defaults so they are easy to find and override without touching
pipeline code.

HOW: python-dotenv loads the .env file on import. Constants are read with
os.getenv and fall back to the defaults below. load_api_key() gives a
clear error when the key is missing.

RULES:
- The API key comes from LLM_API_KEY in the environment, never hardcoded
- LLM_BASE_URL must point at an OpenAI-compatible API root
  (POST {base}/chat/completions)
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the working directory
load_dotenv()

# ---------------------------------------------------------------------------
# LLM endpoint and models
# ---------------------------------------------------------------------------

LLM_BASE_URL = os.getenv(
    "LLM_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai"
)
LLM_MODEL = os.getenv("LLM_MODEL", "gemini-2.5-flash")
LLM_TRANSLATION_MODEL = os.getenv("LLM_TRANSLATION_MODEL", LLM_MODEL)
LLM_TIMEOUT_S = float(os.getenv("LLM_TIMEOUT_S", "120"))

TRANSLATION_TARGET_LANGUAGE = os.getenv("TRANSLATION_TARGET_LANGUAGE", "简体中文")

# ---------------------------------------------------------------------------
# Chunking defaults
# ---------------------------------------------------------------------------

DEFAULT_MAX_WORDS_PER_REQUEST = 400
DEFAULT_OVERLAP_WORDS = 50
DEFAULT_MAX_PARAGRAPHS_PER_REQUEST = 25
DEFAULT_OVERLAP_PARAGRAPHS = 4


def load_api_key() -> str:
    """Load the LLM API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("LLM_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "LLM API key not configured. "
            "Add LLM_API_KEY to the .env file in the working directory."
        )
    return key
