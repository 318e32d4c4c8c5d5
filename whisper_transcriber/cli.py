"""Command-line interface for Whisper Transcriber.

WHY: Users need a way to run a transcription job and write caption files
from the terminal, and to re-export an earlier JSON transcript into the
other formats without running the model again.

HOW: argparse with two subcommands:
  export      — read a JSON chunk export, write the selected formats
  transcribe  — decode audio, run a job through JobController against a
                backend (import path or replay file), write the formats
Status messages go to stderr; output files are saved next to the source
(or to --output-dir).

RULES:
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (name-2.srt)
- Status output goes to stderr (not stdout); exit code 1 on any error
- --verbose switches logging to DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from whisper_transcriber.backend.base import BackendLoadError, load_backend
from whisper_transcriber.backend.messages import (
    CompleteMessage,
    DoneMessage,
    InitiateMessage,
    ProtocolError,
    ReadyMessage,
    UpdateMessage,
)
from whisper_transcriber.backend.replay import replay_factory
from whisper_transcriber.config import (
    AUTO_LANGUAGE,
    DEFAULT_BACKEND,
    DEFAULT_LANGUAGE,
    DEFAULT_MODEL,
    DEFAULT_MULTILINGUAL,
    DEFAULT_QUANTIZED,
    DEFAULT_SUBTASK,
    DEFAULT_TIMESTAMP_GRANULARITY,
    SUBTASKS,
)
from whisper_transcriber.core.audio import (
    AudioDecodeError,
    UnsupportedChannelLayoutError,
    load_audio,
)
from whisper_transcriber.core.ir import Transcript
from whisper_transcriber.formatters import FORMATTERS, FormatterOutput, base_filename, export_transcript
from whisper_transcriber.formatters.json_chunks import chunks_from_json
from whisper_transcriber.jobs import (
    JobConfig,
    JobController,
    TimestampGranularity,
    TranscriptionError,
)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(filename: str, output_dir: Path) -> Path:
    """Return ``output_dir/filename``, adding -2, -3, ... before the extension on conflict."""
    base_path = output_dir / filename
    if not base_path.exists():
        return base_path

    stem, dot, ext = filename.rpartition(".")
    if not dot:
        stem, ext = filename, ""
    counter = 2
    while True:
        candidate = output_dir / "{}-{}{}".format(stem, counter, "." + ext if dot else "")
        if not candidate.exists():
            return candidate
        counter += 1


def _save_outputs(outputs: Dict[str, FormatterOutput], output_dir: Path) -> List[Path]:
    saved: List[Path] = []
    for filename, output in outputs.items():
        path = _resolve_output_path(filename, output_dir)
        path.write_bytes(output.to_bytes())
        saved.append(path)
        _status("  Saved: {}".format(path.name))
    return saved


def _parse_formats(value: Optional[str]) -> List[str]:
    if not value:
        return list(FORMATTERS)
    keys = [f.strip() for f in value.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            _fail("Unknown format '{}'. Available formats: {}".format(
                key, ", ".join(FORMATTERS)))
    return keys


def _output_dir(args: argparse.Namespace, source: Path) -> Path:
    output_dir = Path(args.output_dir).resolve() if args.output_dir else source.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))
    return output_dir


def _print_progress(message: object) -> None:
    if isinstance(message, InitiateMessage):
        _status("  Loading {} ...".format(message.file))
    elif isinstance(message, DoneMessage):
        _status("  Loaded {}".format(message.file))
    elif isinstance(message, ReadyMessage):
        _status("Model ready, transcribing...")
    elif isinstance(message, UpdateMessage):
        _status("  {} chunks so far".format(len(message.data[1].chunks)))
    elif isinstance(message, CompleteMessage):
        _status("Transcription complete ({} chunks)".format(len(message.data.chunks)))


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _run_export(args: argparse.Namespace) -> None:
    source = Path(args.chunks_json).resolve()
    if not source.is_file():
        _fail("File not found: {}".format(source))
    format_keys = _parse_formats(args.formats)
    output_dir = _output_dir(args, source)

    try:
        chunks = chunks_from_json(source.read_text(encoding="utf-8"))
    except ValueError as e:
        _fail(str(e))

    source_name = args.source_name or source.name
    transcript = Transcript(chunks=chunks, source_name=source_name, language=args.ttml_language)
    _status("Exporting {} chunks as {}".format(len(chunks), base_filename(source_name)))
    saved = _save_outputs(export_transcript(transcript, format_keys), output_dir)
    _status("Done! Saved {} file(s) to {}".format(len(saved), output_dir))


def _run_transcribe(args: argparse.Namespace) -> None:
    audio_path = Path(args.audio_file).resolve()
    if not audio_path.is_file():
        _fail("File not found: {}".format(audio_path))
    format_keys = _parse_formats(args.formats)
    output_dir = _output_dir(args, audio_path)

    if args.replay:
        if not Path(args.replay).is_file():
            _fail("Replay file not found: {}".format(args.replay))
        factory = replay_factory(Path(args.replay), step_delay_s=args.replay_delay)
    elif args.backend:
        try:
            factory = load_backend(args.backend)
        except BackendLoadError as e:
            _fail(str(e))
    else:
        _fail("No backend configured. Pass --backend module:attr, --replay FILE, "
              "or set WHISPER_BACKEND in .env.")

    try:
        config = JobConfig(
            model_id=args.model,
            multilingual=args.multilingual,
            quantized=args.quantized,
            subtask=args.subtask,
            language=args.language,
            timestamp_granularity=args.granularity,
        )
    except ValueError as e:
        _fail(str(e))

    _status("Decoding {}...".format(audio_path.name))
    try:
        audio = load_audio(audio_path)
    except AudioDecodeError as e:
        _fail(str(e))
    _status("  {:.1f}s, {} channel(s)".format(audio.duration_s, audio.number_of_channels))

    with JobController(factory, on_message=_print_progress) as controller:
        try:
            controller.start(audio, config, source_name=audio_path.name)
            controller.wait(timeout=args.timeout)
            outputs = controller.export(
                format_keys, translated=args.translated, language=args.ttml_language,
            )
        except (UnsupportedChannelLayoutError, TranscriptionError, ProtocolError, TimeoutError) as e:
            _fail(str(e))

    saved = _save_outputs(outputs, output_dir)
    _status("Done! Saved {} file(s) to {}".format(len(saved), output_dir))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(FORMATTERS)),
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: next to the input file).",
    )
    parser.add_argument(
        "--ttml-language",
        default=None,
        help="xml:lang for TTML output (default: en).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser (separate from main() so tests can inspect it)."""
    parser = argparse.ArgumentParser(
        prog="whisper-transcriber",
        description="Transcribe audio with a Whisper backend and export "
                    "TXT, JSON, SRT, LRC and TTML captions.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Convert a JSON transcript export into other formats.")
    export.add_argument("chunks_json", help="Path to a JSON chunk export.")
    export.add_argument(
        "--source-name",
        default=None,
        help="Name used for output files (default: the JSON file name).",
    )
    _add_output_options(export)
    export.set_defaults(func=_run_export)

    transcribe = sub.add_parser("transcribe", help="Transcribe an audio file.")
    transcribe.add_argument("audio_file", help="Path to the audio file to transcribe.")
    transcribe.add_argument(
        "--backend",
        default=DEFAULT_BACKEND,
        help="InferenceBackend factory as 'module:attr' (default: WHISPER_BACKEND).",
    )
    transcribe.add_argument(
        "--replay",
        default=None,
        help="Replay a JSON chunk export instead of running a model.",
    )
    transcribe.add_argument("--replay-delay", type=float, default=0.0, help=argparse.SUPPRESS)
    transcribe.add_argument("--model", default=DEFAULT_MODEL, help="Model id (default: %(default)s).")
    transcribe.add_argument(
        "--multilingual",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_MULTILINGUAL,
        help="Use the multilingual model (default: %(default)s).",
    )
    transcribe.add_argument(
        "--quantized",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_QUANTIZED,
        help="Use quantized weights (default: %(default)s).",
    )
    transcribe.add_argument("--subtask", choices=SUBTASKS, default=DEFAULT_SUBTASK)
    transcribe.add_argument(
        "--language",
        default=DEFAULT_LANGUAGE,
        help="Source language, or '{}' to detect (multilingual only).".format(AUTO_LANGUAGE),
    )
    transcribe.add_argument(
        "--granularity",
        choices=[g.value for g in TimestampGranularity],
        default=DEFAULT_TIMESTAMP_GRANULARITY,
    )
    transcribe.add_argument(
        "--translated",
        action="store_true",
        help="Export the translated chunks instead of the original ones.",
    )
    transcribe.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds.",
    )
    _add_output_options(transcribe)
    transcribe.set_defaults(func=_run_transcribe)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m whisper_transcriber`` and the console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
