"""Backend that replays an already finished transcript.

WHY: Re-exporting or re-timing an old transcript should exercise the same
job lifecycle as a live run, and tests need a deterministic backend that
speaks the full protocol without a model.

HOW: run() emits one pseudo asset download (initiate, progress, done),
then "ready", one "update" per growing chunk prefix, and "complete". An
optional delay between steps makes the stream observable from the CLI.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional

from whisper_transcriber.backend.base import Emit, InferenceBackend
from whisper_transcriber.backend.messages import TranscriptionRequest
from whisper_transcriber.core.ir import Chunk

REPLAY_ASSET = "replay/transcript.json"


def _wire(chunks: List[Chunk]) -> list:
    return [chunk.to_wire() for chunk in chunks]


class ReplayBackend(InferenceBackend):
    """Emit a recorded chunk list as if it were being transcribed."""

    def __init__(
        self,
        chunks: List[Chunk],
        translated_chunks: Optional[List[Chunk]] = None,
        step_delay_s: float = 0.0,
    ) -> None:
        self.chunks = list(chunks)
        self.translated_chunks = translated_chunks
        self.step_delay_s = step_delay_s

    @classmethod
    def from_json_file(cls, path: Path, step_delay_s: float = 0.0) -> ReplayBackend:
        from whisper_transcriber.formatters.json_chunks import chunks_from_json

        text = Path(path).read_text(encoding="utf-8")
        return cls(chunks_from_json(text), step_delay_s=step_delay_s)

    def _pause(self, cancelled: threading.Event) -> bool:
        """Sleep one step; True if the job was cancelled meanwhile."""
        if self.step_delay_s:
            cancelled.wait(self.step_delay_s)
        return cancelled.is_set()

    def run(self, request: TranscriptionRequest, emit: Emit, cancelled: threading.Event) -> None:
        emit({"status": "initiate", "file": REPLAY_ASSET, "name": request.model})
        for pct in (50.0, 100.0):
            if self._pause(cancelled):
                return
            emit({"status": "progress", "file": REPLAY_ASSET, "progress": pct})
        emit({"status": "done", "file": REPLAY_ASSET})
        emit({"status": "ready"})

        for count in range(1, len(self.chunks) + 1):
            if self._pause(cancelled):
                return
            prefix = self.chunks[:count]
            emit({
                "status": "update",
                "data": ["".join(c.text for c in prefix), {"chunks": _wire(prefix)}],
            })

        data = {
            "text": "".join(c.text for c in self.chunks),
            "chunks": _wire(self.chunks),
        }
        if self.translated_chunks is not None:
            data["tchunks"] = _wire(self.translated_chunks)
        emit({"status": "complete", "data": data})


def replay_factory(path: Path, step_delay_s: float = 0.0):
    """Backend factory reading the transcript fresh on every connect()."""

    def factory() -> ReplayBackend:
        return ReplayBackend.from_json_file(path, step_delay_s=step_delay_s)

    return factory
