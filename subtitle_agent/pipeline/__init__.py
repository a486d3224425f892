"""Resumable LLM pipelines: paragraph building and translation.

WHY: Each pipeline walks a long transcript in bounded windows, calls an
external capability per window, and records its progress in a draft so
an interrupted run picks up where it stopped.

HOW: drafts.py defines the persisted state; polish.py builds corrected
paragraphs; translate_paragraphs.py and translate_segments.py fill in
translations.

RULES:
- A draft is owned by one running call at a time
- The progress callback is awaited after every window
"""
