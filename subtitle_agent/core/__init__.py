"""Core text alignment and scheduling modules.

WHY: The core package holds the pure algorithms every pipeline stage
relies on: the word IR, the tokenizer, the sequence diff, timestamp
realignment, chunk scheduling, and sentence segmentation.

HOW: ir.py defines the data structures; tokenizer.py and diff.py compare
texts; alignment.py turns a diff into timed words; chunking.py computes
resumable windows; segments.py groups and splits.

RULES:
- No I/O and no LLM calls in this package
- Every function is total: degenerate input gives empty output
"""
