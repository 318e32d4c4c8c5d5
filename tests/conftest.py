"""Shared test fixtures for the whisper_transcriber test suite.

WHY: Formatter, locator, job and CLI tests all need the same small,
hand-checked transcripts and a few in-process backends. Centralizing them
here keeps the expected values in one place.

HOW: Plain module-level chunk lists wrapped in fixtures (copied per test
so no test can mutate another's input), plus InferenceBackend subclasses
that either do nothing or emit a scripted message sequence.

RULES:
- SAMPLE_CHUNKS timings are exact binary-friendly values (no rounding noise)
- The last sample chunk has no end time, as Whisper often reports
- Backends here never sleep unless a test asks them to
"""

import threading
from typing import Any, Dict, List

import pytest

from whisper_transcriber.backend.base import InferenceBackend
from whisper_transcriber.core.ir import Chunk, Transcript


SAMPLE_CHUNKS: List[Chunk] = [
    Chunk(text=" Hello there.", start_time=0.0, end_time=1.5),
    Chunk(text=" How are you doing", start_time=1.5, end_time=3.0),
    Chunk(text=" today?", start_time=3.0, end_time=3.75),
    Chunk(text=" Fine, thanks.", start_time=9.0, end_time=10.25),
    Chunk(text=" Bye", start_time=10.5, end_time=None),
]


def wire_chunks(chunks: List[Chunk]) -> List[Dict[str, Any]]:
    return [chunk.to_wire() for chunk in chunks]


@pytest.fixture
def sample_chunks() -> List[Chunk]:
    return [Chunk(c.text, c.start_time, c.end_time) for c in SAMPLE_CHUNKS]


@pytest.fixture
def sample_transcript(sample_chunks) -> Transcript:
    return Transcript(chunks=sample_chunks, source_name="interview.mp3")


@pytest.fixture
def empty_transcript() -> Transcript:
    return Transcript(chunks=[], source_name=None)


class IdleBackend(InferenceBackend):
    """Accepts requests and never answers; tests feed messages by hand."""

    def __init__(self) -> None:
        self.requests = []
        self.closed = False

    def run(self, request, emit, cancelled) -> None:
        self.requests.append(request)

    def close(self) -> None:
        self.closed = True


class ScriptedBackend(InferenceBackend):
    """Emits a fixed list of raw messages for every request."""

    def __init__(self, messages: List[Dict[str, Any]]) -> None:
        self.messages = messages
        self.requests = []

    def run(self, request, emit, cancelled) -> None:
        self.requests.append(request)
        for message in self.messages:
            emit(message)


class BlockingBackend(InferenceBackend):
    """Emits "initiate", then blocks until released or cancelled."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.started = threading.Event()
        self.finished = threading.Event()

    def run(self, request, emit, cancelled) -> None:
        emit({"status": "initiate", "file": "model.onnx", "name": getattr(request, "model", None)})
        self.started.set()
        while not cancelled.is_set() and not self.release.is_set():
            cancelled.wait(0.01)
        emit({"status": "complete", "data": {"text": "late", "chunks": []}})
        self.finished.set()


class ExplodingBackend(InferenceBackend):
    def run(self, request, emit, cancelled) -> None:
        raise RuntimeError("out of memory")
