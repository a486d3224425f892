"""Command-line interface for Subtitle Agent.

WHY: Users need one command that turns a transcription JSON into
corrected, paragraphed, translated subtitles, and that can be re-run
after a crash or Ctrl-C without paying for the finished chunks again.

HOW: Uses argparse for the input file and chunking/translation options.
Runs the async pipeline via asyncio.run():
  1. Import the transcription JSON (WhisperKit shape) into Segments
  2. Build paragraphs with polish(), saving the paragraphs draft after
     every chunk
  3. Translate paragraphs, split them into sentence segments, translate
     the segments, saving the translation draft after every chunk
  4. Run the selected formatters and save their output
Status messages go to stderr; output files are saved next to the input
(or to --output-dir).

RULES:
- Positional argument: input transcription JSON path
- Drafts: {stem}-paragraphs-draft.json and {stem}-translation-draft.json
  in the output directory; present drafts are resumed
- CLI chunk options override the options stored in a resumed draft
- A finished translation pass that left items untranslated is rerun
  from the first pending item on resume
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-subtitle-2.srt)
- Exit 1 on errors, 130 on Ctrl-C (drafts already saved stay valid)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from subtitle_agent.adapters.whisper_adapter import WhisperTranscript, import_whisper
from subtitle_agent.config import TRANSLATION_TARGET_LANGUAGE
from subtitle_agent.core.ir import Subtitle, generate_id
from subtitle_agent.core.segments import ensure_paragraph_segments
from subtitle_agent.formatters import FORMATTERS
from subtitle_agent.formatters.base import FormatterOutput
from subtitle_agent.llm.client import LLMClient
from subtitle_agent.pipeline.drafts import (
    ParagraphBuilderDraft,
    SubtitleTranslationDraft,
)
from subtitle_agent.pipeline.polish import polish
from subtitle_agent.pipeline.translate_paragraphs import has_translation, translate_paragraphs
from subtitle_agent.pipeline.translate_segments import has_pending_segments, translate_segments

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr.

    RULES:
    - All status messages go to stderr
    - Always flush after writing
    """
    print(msg, file=sys.stderr, flush=True)


def _read_json(path: Path) -> Any | None:
    """Return the parsed JSON at path, or None if the file does not exist."""
    if not path.is_file():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, data: Any) -> None:
    """Write JSON atomically (temp file + rename) so a crash never leaves half a draft."""
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. interview-subtitle.srt)
    - Conflict: split suffix at last dot, insert counter before extension
      (e.g. interview-subtitle-2.srt)
    - Counter starts at 2 and increments

    Returns:
        A Path that does not yet exist.
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    """Save a single formatter output to disk as UTF-8 and return its path."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _load_paragraph_draft(
    path: Path,
    transcript: WhisperTranscript,
    args: argparse.Namespace,
) -> ParagraphBuilderDraft:
    """Resume the paragraphs draft at path, or start a new one.

    A resumed draft keeps its own segments so word ids still match the
    committed paragraphs.
    """
    data = _read_json(path)
    if data is not None:
        draft = ParagraphBuilderDraft.from_dict(data)
        _status("  Resuming paragraphs draft: {}".format(path.name))
        if not draft.segments and not draft.words:
            draft.segments = transcript.segments
    else:
        draft = ParagraphBuilderDraft(segments=transcript.segments)

    if args.max_words_per_request is not None:
        draft.options.max_words_per_request = args.max_words_per_request
    if args.overlap_words is not None:
        draft.options.overlap_words = args.overlap_words
    return draft


def _reopen_finished_passes(draft: SubtitleTranslationDraft) -> None:
    """Clear terminal cursors of a resumed draft that still has gaps.

    A finished pass leaves its cursor at the end, so without this the next
    run would skip paragraphs or segments the model dropped. With the cursor
    cleared the orchestrator restarts at the first pending item.
    """
    translated = draft.translated_subtitle
    if translated is None:
        return
    paragraphs = translated.paragraphs

    cursor = draft.last_processed_paragraph_index
    if cursor is not None and cursor >= len(paragraphs):
        pending = sum(1 for p in paragraphs if not has_translation(p.translation))
        if pending:
            _status("  Retrying {} untranslated paragraph(s)".format(pending))
            draft.last_processed_paragraph_index = None

    cursor = draft.last_processed_segment_paragraph_index
    if cursor is not None and cursor >= len(paragraphs):
        if any(has_pending_segments(p) for p in paragraphs):
            _status("  Retrying untranslated sentence segments")
            draft.last_processed_segment_paragraph_index = None


def _load_translation_draft(
    path: Path,
    subtitle: Subtitle,
    args: argparse.Namespace,
) -> SubtitleTranslationDraft:
    """Resume the translation draft at path when it targets the same language."""
    data = _read_json(path)
    draft: SubtitleTranslationDraft | None = None
    if data is not None:
        draft = SubtitleTranslationDraft.from_dict(data)
        if draft.target_language != args.target_language:
            _status("  Ignoring translation draft for '{}'".format(draft.target_language))
            draft = None
        else:
            _status("  Resuming translation draft: {}".format(path.name))
            _reopen_finished_passes(draft)

    if draft is None:
        draft = SubtitleTranslationDraft(subtitle=subtitle, target_language=args.target_language)

    if args.max_paragraphs_per_request is not None:
        draft.options.max_paragraphs_per_request = args.max_paragraphs_per_request
        draft.segment_options.max_paragraphs_per_request = args.max_paragraphs_per_request
    if args.overlap_paragraphs is not None:
        draft.options.overlap_paragraphs = args.overlap_paragraphs
        draft.segment_options.overlap_paragraphs = args.overlap_paragraphs
    return draft


def _resolve_format_keys(formats: str | None) -> list[str]:
    """Parse --formats into registry keys.

    Raises:
        ValueError: If a key is not registered in FORMATTERS.
    """
    if not formats:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in formats.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            raise ValueError("Unknown format '{}'. Available formats: {}".format(key, available))
    return keys


async def _run_pipeline(args: argparse.Namespace) -> list[Path]:
    """Execute the full pipeline and return the saved output paths.

    RULES:
    - Validate input and options before any API call
    - Drafts are written after every chunk and once more at the end
    """
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        raise ValueError("File not found: {}".format(input_path))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        raise ValueError("Output directory does not exist: {}".format(output_dir))

    format_keys = _resolve_format_keys(args.formats)
    stem = input_path.stem
    paragraphs_draft_path = output_dir / "{}-paragraphs-draft.json".format(stem)
    translation_draft_path = output_dir / "{}-translation-draft.json".format(stem)

    _status("Loading transcription...")
    transcript = import_whisper(json.loads(input_path.read_text(encoding="utf-8")))
    _status("  {} segments, {} words, language: {}".format(
        len(transcript.segments), len(transcript.words), transcript.language,
    ))

    async with LLMClient(target_language=args.target_language) as llm:
        # Step 1: Paragraphs
        _status("Polishing transcription into paragraphs...")
        paragraph_draft = _load_paragraph_draft(paragraphs_draft_path, transcript, args)

        def _save_paragraph_draft(draft: ParagraphBuilderDraft) -> None:
            _write_json(paragraphs_draft_path, draft.to_dict())
            _status("  Paragraphs: {} (group {}, word {})".format(
                len(draft.paragraphs),
                draft.last_processed_group_index,
                draft.last_processed_word_index,
            ))

        await polish(paragraph_draft, llm.correct_text, _save_paragraph_draft)
        _write_json(paragraphs_draft_path, paragraph_draft.to_dict())

        subtitle = Subtitle(
            id=generate_id(),
            title=stem,
            filename=input_path.name,
            language=transcript.language,
            paragraphs=ensure_paragraph_segments(paragraph_draft.paragraphs),
        )

        # Step 2: Translation
        if not args.no_translate:
            _status("Translating into {}...".format(args.target_language))
            translation_draft = _load_translation_draft(translation_draft_path, subtitle, args)

            def _save_translation_draft(draft: SubtitleTranslationDraft) -> None:
                _write_json(translation_draft_path, draft.to_dict())

            translated = await translate_paragraphs(
                translation_draft, llm.translate_paragraphs, _save_translation_draft
            )
            translated.paragraphs = ensure_paragraph_segments(translated.paragraphs)
            _save_translation_draft(translation_draft)

            _status("Translating sentence segments...")
            subtitle = await translate_segments(
                translation_draft, llm.translate_segments, _save_translation_draft
            )
            _save_translation_draft(translation_draft)

    # Step 3: Formatters
    _status("Formatting output...")
    saved_files: list[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(subtitle):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))
    return saved_files


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - Positional: input_file (required)
    - Chunk options default to None so a resumed draft keeps its own
    """
    parser = argparse.ArgumentParser(
        prog="subtitle-agent",
        description="Correct, paragraph, and translate a transcription JSON "
                    "with an LLM, producing SRT, plain text, and subtitle JSON.",
    )

    parser.add_argument(
        "input_file",
        help="Path to the transcription JSON (segments with word timings).",
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for drafts and output files (default: same as input file).",
    )

    parser.add_argument(
        "--target-language",
        default=TRANSLATION_TARGET_LANGUAGE,
        help="Translation target language (default: %(default)s).",
    )

    parser.add_argument(
        "--no-translate",
        action="store_true",
        help="Skip translation; only correct and paragraph the transcript.",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--max-words-per-request",
        type=int,
        default=None,
        help="Words sent per correction request (default: 400).",
    )

    parser.add_argument(
        "--overlap-words",
        type=int,
        default=None,
        help="Words of overlap between correction requests (default: 50).",
    )

    parser.add_argument(
        "--max-paragraphs-per-request",
        type=int,
        default=None,
        help="Paragraphs sent per translation request (default: 25).",
    )

    parser.add_argument(
        "--overlap-paragraphs",
        type=int,
        default=None,
        help="Previously translated paragraphs sent as context (default: 4).",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log LLM requests and responses.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(_run_pipeline(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user. Drafts saved so far will be resumed on the next run.")
        sys.exit(130)
    except Exception as e:
        logger.debug("Pipeline failed", exc_info=True)
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
