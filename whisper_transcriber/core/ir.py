"""Intermediate representation dataclasses for transcripts and downloads.

WHY: The inference backend speaks loosely typed messages where a chunk is
``{"text": ..., "timestamp": [start, end|null]}``. Formatters, the job
controller, and the active-segment locator each need the same chunk data
with explicit field names and an explicit "no end time" state.

HOW: Four dataclasses:
  Chunk            — one timestamped span of transcribed text
  TranscriptResult — the live/final transcript owned by a job
  ProgressItem     — one model-asset download tracked by file key
  Transcript       — what formatters receive: chunks + naming metadata

RULES:
- All times are float seconds from the start of the audio
- end_time is None when the backend did not report one; every consumer
  defines its own fallback instead of failing
- Chunk order is reading/playback order and is never re-sorted
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Chunk:
    """One timestamped span of transcribed text.

    RULES:
    - text is kept verbatim (backends often emit a leading space)
    - end_time, when present, is >= start_time for well-formed input
    """

    text: str
    start_time: float
    end_time: float | None = None

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Chunk:
        """Parse the backend's ``{"text", "timestamp": [start, end]}`` form."""
        timestamp = data["timestamp"]
        end = timestamp[1] if len(timestamp) > 1 else None
        return cls(
            text=data["text"],
            start_time=float(timestamp[0]),
            end_time=None if end is None else float(end),
        )

    def to_wire(self) -> dict[str, Any]:
        return {"text": self.text, "timestamp": [self.start_time, self.end_time]}


@dataclass
class TranscriptResult:
    """The transcript owned by the current job.

    WHY: Partial ("update") and final ("complete") backend messages both
    replace the visible transcript. is_busy tells consumers whether the
    chunk list may still change.

    RULES:
    - Replaced wholesale on every update/complete message
    - is_busy is True only for partial results
    - translated_chunks is only set by a complete message that carries them
    - source_name is the audio the job ran on, kept for export naming
    """

    is_busy: bool
    text: str
    chunks: list[Chunk] = field(default_factory=list)
    translated_chunks: list[Chunk] | None = None
    source_name: str | None = None


@dataclass
class ProgressItem:
    """A model-asset download in flight, keyed by ``file``."""

    file: str
    name: str
    loaded: int = 0
    total: int = 0
    progress: float = 0.0
    status: str = "initiate"


@dataclass
class Transcript:
    """Formatter input: an ordered chunk list plus naming metadata.

    RULES:
    - source_name is the original audio filename (extension stripped for
      output naming); None falls back to "transcript"
    - language is an optional BCP-47-ish tag used by XML formats
    """

    chunks: list[Chunk]
    source_name: str | None = None
    language: str | None = None
