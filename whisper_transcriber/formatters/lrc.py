"""LRC lyric formatters — plain and gap-aware.

WHY: Lyric-sync players (music apps, karaoke tools) read LRC: one
``[MM:SS.hh]text`` line per chunk. A player shows each line until the
next timestamp, so a long instrumental gap keeps the previous line on
screen. The gap-aware variant fixes that by inserting an empty
timestamped line shortly after a chunk ends.

HOW: LRCFormatter writes one line per chunk at its start time.
GapAwareLRCFormatter does the same, but when the previous chunk has a
known end and the next chunk starts more than LRC_SILENCE_GAP_S later,
it first writes a bare timestamp at ``previous_end + LRC_SILENCE_GAP_S``.

RULES:
- No numbering, no header tags; text trimmed
- Chunks without an end time never trigger a silence line
- Suffixes: ".lrc" and "_alt.lrc"; media type: "text/plain"
"""

from __future__ import annotations

from typing import List

from whisper_transcriber.config import LRC_SILENCE_GAP_S
from whisper_transcriber.core.ir import Chunk, Transcript
from whisper_transcriber.formatters.base import BaseFormatter, FormatterOutput
from whisper_transcriber.formatters.timecodes import lrc_timestamp, whole_ms


def _lyric_line(chunk: Chunk) -> str:
    return "{}{}\n".format(lrc_timestamp(chunk.start_time), chunk.text.strip())


class LRCFormatter(BaseFormatter):
    """One ``[MM:SS.hh]text`` line per chunk."""

    @property
    def name(self) -> str:
        return "LRC Lyrics"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        content = "".join(_lyric_line(chunk) for chunk in transcript.chunks)
        return [FormatterOutput(suffix=".lrc", content=content, media_type="text/plain")]


class GapAwareLRCFormatter(BaseFormatter):
    """LRC with empty lines marking silences longer than the gap threshold."""

    def __init__(self, silence_gap_s: float = LRC_SILENCE_GAP_S) -> None:
        self.silence_gap_s = silence_gap_s

    @property
    def name(self) -> str:
        return "LRC Lyrics (gap-aware)"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        gap_ms = whole_ms(self.silence_gap_s)
        lines: List[str] = []
        previous = None

        for chunk in transcript.chunks:
            if previous is not None and previous.end_time is not None:
                if whole_ms(chunk.start_time) - whole_ms(previous.end_time) > gap_ms:
                    lines.append(lrc_timestamp(previous.end_time + self.silence_gap_s) + "\n")
            lines.append(_lyric_line(chunk))
            previous = chunk

        return [FormatterOutput(suffix="_alt.lrc", content="".join(lines), media_type="text/plain")]
