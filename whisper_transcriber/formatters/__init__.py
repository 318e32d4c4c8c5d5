"""Output formatter registry — the caption export engine.

WHY: The CLI and the job controller need a single lookup to find the
right formatter by name. A central dict makes it trivial to add new
formats: create the formatter class, import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
export_transcript() instantiates the requested formatters and returns
their outputs keyed by final filename.

RULES:
- Keys are snake_case identifiers (used in CLI flags)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Type

from whisper_transcriber.core.ir import Transcript
from whisper_transcriber.formatters.base import BaseFormatter, FormatterOutput, base_filename
from whisper_transcriber.formatters.json_chunks import JSONChunksFormatter
from whisper_transcriber.formatters.lrc import GapAwareLRCFormatter, LRCFormatter
from whisper_transcriber.formatters.plain_text import PlainTextFormatter
from whisper_transcriber.formatters.srt_captions import SRTCaptionFormatter
from whisper_transcriber.formatters.ttml import TTMLFormatter

FORMATTERS: Dict[str, Type[BaseFormatter]] = {
    "txt": PlainTextFormatter,
    "json": JSONChunksFormatter,
    "srt": SRTCaptionFormatter,
    "lrc": LRCFormatter,
    "lrc_alt": GapAwareLRCFormatter,
    "ttml": TTMLFormatter,
}


class UnknownFormatError(KeyError):
    """Raised when an export key is not in FORMATTERS."""


def get_formatter(key: str) -> BaseFormatter:
    try:
        return FORMATTERS[key]()
    except KeyError:
        raise UnknownFormatError(
            "Unknown format {!r}; choose from {}".format(key, ", ".join(FORMATTERS))
        ) from None


def export_transcript(
    transcript: Transcript,
    keys: Optional[Iterable[str]] = None,
) -> Dict[str, FormatterOutput]:
    """Run formatters over ``transcript``.

    Args:
        transcript: Chunks plus source name for output naming.
        keys: Formatter keys to run, in order; None runs all registered.

    Returns:
        Ordered mapping of output filename → FormatterOutput.
    """
    stem = base_filename(transcript.source_name)
    outputs: Dict[str, FormatterOutput] = {}
    for key in (list(keys) if keys is not None else list(FORMATTERS)):
        for output in get_formatter(key).format(transcript):
            outputs[output.filename(stem)] = output
    return outputs


__all__ = [
    "FORMATTERS",
    "BaseFormatter",
    "FormatterOutput",
    "UnknownFormatError",
    "base_filename",
    "export_transcript",
    "get_formatter",
]
