"""Plain text transcript formatter.

WHY: Editors need a simple, readable transcript for review and archival
— no timecodes, just the words in reading order.

HOW: Each chunk's text is trimmed and written on its own line; the whole
result is trimmed once more so there is no leading/trailing blank line.

RULES:
- One line per chunk, chunk order preserved
- Output suffix: ".txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List

from whisper_transcriber.core.ir import Transcript
from whisper_transcriber.formatters.base import BaseFormatter, FormatterOutput


class PlainTextFormatter(BaseFormatter):
    """Formatter that writes one trimmed chunk per line."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        content = "\n".join(chunk.text.strip() for chunk in transcript.chunks).strip()
        return [
            FormatterOutput(
                suffix=".txt",
                content=content,
                media_type="text/plain",
            )
        ]
