"""TTML styled-caption formatter with heuristic line grouping.

WHY: Broadcast and streaming players (and most NLEs) accept TTML with an
inline style. Word-level chunks are far too short to show one per
caption, and segment-level chunks still need to be combined into lines
that read naturally, so chunks are grouped into caption paragraphs.

HOW: group_caption_lines() walks the chunks once. While a line is open,
each chunk is compared with the previous one and the line is closed when:
  1. the previous chunk's text ends a sentence (. ? !), or
  2. the silence since the previous chunk exceeds TTML_MAX_GAP_S, or
  3. adding the chunk would push the line past TTML_MAX_LINE_CHARS.
Each line becomes a ``<p>`` spanning its chunks; each chunk a ``<span>``.

RULES:
- Line length = trimmed chunk texts joined by single spaces
- Gaps are compared in whole milliseconds
- Missing end time → the previous chunk's start is used for the gap, and
  a span/paragraph ends at its own (last) start
- Span text is XML-escaped (&, <, >)
- Empty transcript → a valid document with an empty <div>
- Output suffix: ".ttml"; media type: "application/ttml+xml"
"""

from __future__ import annotations

from typing import List
from xml.sax.saxutils import escape, quoteattr

from whisper_transcriber.config import (
    SENTENCE_END_PUNCTUATION,
    TTML_MAX_GAP_S,
    TTML_MAX_LINE_CHARS,
)
from whisper_transcriber.core.ir import Chunk, Transcript
from whisper_transcriber.formatters.base import BaseFormatter, FormatterOutput
from whisper_transcriber.formatters.timecodes import ttml_timestamp, whole_ms

_STYLE_ID = "s1"
_DEFAULT_LANGUAGE = "en"


def _end_or_start(chunk: Chunk) -> float:
    return chunk.end_time if chunk.end_time is not None else chunk.start_time


def _breaks_line(previous: Chunk, chunk: Chunk, line_length: int) -> bool:
    if previous.text.strip().endswith(SENTENCE_END_PUNCTUATION):
        return True
    if whole_ms(chunk.start_time) - whole_ms(_end_or_start(previous)) > whole_ms(TTML_MAX_GAP_S):
        return True
    return line_length + 1 + len(chunk.text.strip()) > TTML_MAX_LINE_CHARS


def group_caption_lines(chunks: List[Chunk]) -> List[List[Chunk]]:
    """Group consecutive chunks into caption lines, preserving order."""
    lines: List[List[Chunk]] = []
    current: List[Chunk] = []
    line_length = 0

    for chunk in chunks:
        if current and _breaks_line(current[-1], chunk, line_length):
            lines.append(current)
            current = []
        text_length = len(chunk.text.strip())
        line_length = line_length + 1 + text_length if current else text_length
        current.append(chunk)

    if current:
        lines.append(current)
    return lines


def _paragraph(line: List[Chunk], indent: str) -> str:
    parts = ["{}<p begin=\"{}\" end=\"{}\" style=\"{}\">".format(
        indent,
        ttml_timestamp(line[0].start_time),
        ttml_timestamp(_end_or_start(line[-1])),
        _STYLE_ID,
    )]
    for chunk in line:
        parts.append("{}  <span begin=\"{}\" end=\"{}\">{}</span>".format(
            indent,
            ttml_timestamp(chunk.start_time),
            ttml_timestamp(_end_or_start(chunk)),
            escape(chunk.text.strip()),
        ))
    parts.append("{}</p>".format(indent))
    return "\n".join(parts)


def render_ttml(chunks: List[Chunk], language: str = _DEFAULT_LANGUAGE) -> str:
    body = "\n".join(_paragraph(line, "      ") for line in group_caption_lines(chunks))
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<tt xmlns="http://www.w3.org/ns/ttml" '
        'xmlns:tts="http://www.w3.org/ns/ttml#styling" xml:lang={}>'.format(quoteattr(language)),
        "  <head>",
        "    <styling>",
        '      <style xml:id="{}" tts:fontSize="14pt" tts:textAlign="center" '
        'tts:color="white" tts:backgroundColor="black"/>'.format(_STYLE_ID),
        "    </styling>",
        "  </head>",
        "  <body>",
        "    <div>",
    ]
    if body:
        lines.append(body)
    lines.extend(["    </div>", "  </body>", "</tt>"])
    return "\n".join(lines) + "\n"


class TTMLFormatter(BaseFormatter):
    """Formatter that produces styled, line-grouped TTML captions."""

    @property
    def name(self) -> str:
        return "TTML Captions"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        content = render_ttml(transcript.chunks, transcript.language or _DEFAULT_LANGUAGE)
        return [
            FormatterOutput(
                suffix=".ttml",
                content=content,
                media_type="application/ttml+xml",
            )
        ]
