"""Subtitle Agent — LLM-assisted transcript polishing and translation.

WHY: Speech recognition produces timed words with no punctuation, no
paragraphs, and plenty of filler. Language models clean that text well
but return it without timing. This package lets an LLM rewrite bounded
slices of a transcript and maps every rewrite back onto exact timestamps,
then translates the result paragraph by paragraph and sentence by
sentence.

HOW: Four layers — core (tokenizer, diff, realignment, chunk scheduling),
pipeline (resumable paragraph building and translation over drafts),
llm (HTTP client for the text-generation service), and output
(formatters, CLI). Each layer is independently testable.

RULES:
- Pipelines only ever talk to the LLM through the capability protocols
- Drafts are the only state; persisting them after every chunk makes
  any run resumable
- Core functions are pure and never raise
"""

__version__ = "0.1.0"
