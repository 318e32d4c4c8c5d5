"""SRT subtitle formatter — one cue per chunk.

WHY: SRT is the lowest common denominator for video players and editors.
Whisper chunks are already caption-sized, so no re-segmentation is done.

HOW: Each chunk becomes a numbered block: 1-based index, a
``HH:MM:SS,mmm --> HH:MM:SS,mmm`` line, and the trimmed text, followed by
a blank line.

RULES:
- Exactly one block per chunk, numbered from 1 in chunk order
- Missing end time → the cue ends at its own start
- Empty transcript → empty file
- Output suffix: ".srt"; media type: "application/x-subrip"
"""

from __future__ import annotations

from typing import List

from whisper_transcriber.core.ir import Transcript
from whisper_transcriber.formatters.base import BaseFormatter, FormatterOutput
from whisper_transcriber.formatters.timecodes import srt_timestamp


class SRTCaptionFormatter(BaseFormatter):
    """Formatter that produces one SRT cue per chunk."""

    @property
    def name(self) -> str:
        return "SRT Subtitles"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        blocks: List[str] = []
        for index, chunk in enumerate(transcript.chunks, start=1):
            end = chunk.end_time if chunk.end_time is not None else chunk.start_time
            blocks.append("{}\n{} --> {}\n{}\n\n".format(
                index,
                srt_timestamp(chunk.start_time),
                srt_timestamp(end),
                chunk.text.strip(),
            ))

        return [
            FormatterOutput(
                suffix=".srt",
                content="".join(blocks),
                media_type="application/x-subrip",
            )
        ]
