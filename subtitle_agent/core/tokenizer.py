"""Script-aware, lossless word tokenizer.

WHY: The correction LLM returns free-form text. To map that text back
onto timestamped words, both sides must be split the same way: Latin
words with their trailing punctuation, one token per CJK character, and
whitespace carried on the following word so that "".join(tokens)
reproduces the input exactly.

HOW: A single regex (``regex`` library, for Unicode script properties)
scans the text into raw pieces: abbreviation+word, Latin/word run, CJK
character, punctuation run, whitespace run, or any other single
character. A small state machine then merges pieces:
  - narrow punctuation (and uncovered symbols such as "$" or emoji) is
    appended to the pending buffer, so it sticks to the adjacent piece
  - full-width/CJK punctuation is flushed as its own token
  - any piece emitted right after a whitespace-only token is appended to
    that token, so whitespace leads the following word

RULES:
- tokenize("") == []
- "".join(tokenize(text)) == text for every input
- One token per Han/Hiragana/Katakana/Hangul character
- "Dr.", "St.", "Co.", "Rd." fuse with an immediately following word run
- Hyphens and apostrophes inside a word stay in the word; a leading or
  trailing hyphen is part of the run
"""

from __future__ import annotations

from collections.abc import Iterable

import regex

from subtitle_agent.core.ir import Word

# Latin letters plus ASCII digits and underscore. Python's \w is Unicode-wide
# and would swallow CJK runs, so the class is spelled out.
_WORD_CHAR = r"[\p{Latin}0-9_]"

_TOKEN_RE = regex.compile(
    r"(?P<abbrev>(?:St\.|Dr\.|Co\.|Rd\.)" + _WORD_CHAR + r"+)"
    r"|(?P<word>-?" + _WORD_CHAR + r"+(?:[-']" + _WORD_CHAR + r"+)*-?)"
    r"|(?P<cjk>[\p{Han}\p{Hiragana}\p{Katakana}\p{Hangul}])"
    r"|(?P<punct>\p{P}+)"
    r"|(?P<space>\s+)"
    r"|(?P<other>.)",
    regex.DOTALL,
)

_WHITESPACE_RE = regex.compile(r"^\s+\Z")
_CJK_PUNCTUATION_RE = regex.compile(r"^[\u3000-\u303F\uFF00-\uFFEF]+\Z")

# Honorifics that end with a period but never end a sentence.
_SPECIAL_WORDS = frozenset({"mrs.", "ms.", "mr.", "dr.", "prof.", "st."})

_END_OF_SENTENCE_RE = regex.compile(r"([.?!。！？…)])\Z|(--)\Z")
_END_OF_SEGMENT_RE = regex.compile(r"[,.!?，。！？…\]]\s*\Z")


def tokenize(text: str) -> list[str]:
    """Split text into lossless word tokens.

    Args:
        text: Arbitrary text (may mix scripts, punctuation, newlines).

    Returns:
        Tokens whose concatenation is exactly ``text``.
    """
    if not text:
        return []

    result: list[str] = []
    buffer = ""

    def _push(content: str) -> None:
        if not content:
            return
        if result and _WHITESPACE_RE.match(result[-1]):
            result[-1] += content
        else:
            result.append(content)

    for match in _TOKEN_RE.finditer(text):
        piece = match.group(0)
        kind = match.lastgroup

        if kind in ("punct", "other"):
            if kind == "punct" and _CJK_PUNCTUATION_RE.match(piece):
                _push(buffer)
                buffer = ""
                _push(piece)
            else:
                buffer += piece
        else:
            _push(buffer)
            buffer = piece

    _push(buffer)
    return result


def join_words_text(words: Iterable[Word]) -> str:
    """Concatenate word texts into the string sent to the LLM."""
    return "".join(word.text for word in words)


def is_end_of_sentence(text: str) -> bool:
    """True if the token closes a sentence (honorifics like "Dr." excluded)."""
    if text.strip().lower() in _SPECIAL_WORDS:
        return False
    return _END_OF_SENTENCE_RE.search(text) is not None


def is_end_of_segment(text: str) -> bool:
    """True if the token closes a clause, comma included.

    Trailing whitespace after the mark is allowed.
    """
    if text.strip().lower() in _SPECIAL_WORDS:
        return False
    return _END_OF_SEGMENT_RE.search(text) is not None
