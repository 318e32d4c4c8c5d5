"""Transcription job controller — lifecycle, progress, and backend protocol.

WHY: A transcription job spans seconds to minutes and runs on a backend
thread. Someone has to own the job's state: whether the model is still
downloading, whether a partial transcript is showing, whether the job
finished or failed, and which backend connection is current. This module
is that owner; everything else reads from it.

HOW: Three components work together:
  JobConfig     — frozen snapshot of the user's model/task settings
  JobState      — enum of lifecycle states
  JobController — starts/stops jobs over a BackendConnection and applies
                  inbound messages one at a time on the caller's thread

Messages are pulled from the connection by process_pending() (or wait())
and dispatched by message type through a handler table that covers every
member of the protocol union.

RULES:
- All state changes happen on the thread that calls process_pending(),
  handle_raw() or handle_message(); there is no locking
- start() while a job is in flight cancels it: the backend is reconnected
  so nothing from the old job can reach the new one
- stop() is the guaranteed-cancellation path; it always leaves a fresh,
  connected backend behind
- A backend "error" discards any partial transcript
- Exports use the last *completed* transcript, never a partial one, named
  after the audio that job ran on; clear_output() forgets it
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Dict, Iterable, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from whisper_transcriber.backend.base import BackendFactory
from whisper_transcriber.backend.connection import BackendConnection
from whisper_transcriber.backend.messages import (
    CompleteMessage,
    DoneMessage,
    ErrorMessage,
    InitiateMessage,
    ProgressMessage,
    ReadyMessage,
    TranscriptionRequest,
    UpdateMessage,
    parse_message,
)
from whisper_transcriber.config import (
    AUTO_LANGUAGE,
    DEFAULT_LANGUAGE,
    DEFAULT_MODEL,
    DEFAULT_MULTILINGUAL,
    DEFAULT_QUANTIZED,
    DEFAULT_SUBTASK,
    DEFAULT_TIMESTAMP_GRANULARITY,
    SUBTASKS,
)
from whisper_transcriber.core.audio import AudioBuffer, downmix
from whisper_transcriber.core.ir import ProgressItem, Transcript, TranscriptResult
from whisper_transcriber.core.locator import find_active_index
from whisper_transcriber.core.progress import ProgressTracker
from whisper_transcriber.formatters import FormatterOutput, export_transcript

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """Raised when a job ends without a completed transcript.

    RULES:
    - message is user-facing and says how to recover
    """


class NoTranscriptError(TranscriptionError):
    """Raised when exporting before any job has completed."""


class TranscriptionTimeoutError(TimeoutError):
    """Raised when wait() gives up before the job reaches a terminal state."""


class TimestampGranularity(str, enum.Enum):
    SEGMENT = "segment"
    WORD = "word"


class JobState(str, enum.Enum):
    """Lifecycle states of the controller's current job.

    RULES:
    - idle: no job started, or the last one was stopped
    - model_loading: job started, backend still fetching/initialising the model
    - transcribing: model ready, partial results may arrive
    - complete: terminal success, output holds the final transcript
    - error: terminal failure, output is None and error holds the reason
    """

    IDLE = "idle"
    MODEL_LOADING = "model_loading"
    TRANSCRIBING = "transcribing"
    COMPLETE = "complete"
    ERROR = "error"


class JobConfig(BaseModel):
    """Settings snapshot for one job.

    RULES:
    - Frozen: a running job never sees later setting changes
    - subtask/language only reach the backend when multilingual is True
    - language "auto" means detect, sent as None
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=(), validate_default=True)

    model_id: str = Field(default=DEFAULT_MODEL, description="Model identifier, e.g. 'Xenova/whisper-tiny'.")
    multilingual: bool = Field(default=DEFAULT_MULTILINGUAL, description="Use the multilingual model variant.")
    quantized: bool = Field(default=DEFAULT_QUANTIZED, description="Use quantized weights.")
    subtask: Optional[str] = Field(default=DEFAULT_SUBTASK, description="'transcribe' or 'translate'.")
    language: Optional[str] = Field(default=DEFAULT_LANGUAGE, description="Source language, or 'auto'.")
    timestamp_granularity: TimestampGranularity = Field(
        default=DEFAULT_TIMESTAMP_GRANULARITY,
        description="Chunk timestamps per 'segment' or per 'word'.",
    )

    @field_validator("subtask")
    @classmethod
    def _known_subtask(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in SUBTASKS:
            raise ValueError("subtask must be one of {}".format(", ".join(SUBTASKS)))
        return value

    def effective_subtask(self) -> Optional[str]:
        return self.subtask if self.multilingual else None

    def effective_language(self) -> Optional[str]:
        if not self.multilingual or self.language in (None, AUTO_LANGUAGE):
            return None
        return self.language

    def to_request(self, audio: np.ndarray) -> TranscriptionRequest:
        return TranscriptionRequest(
            audio=audio,
            model=self.model_id,
            multilingual=self.multilingual,
            quantized=self.quantized,
            subtask=self.effective_subtask(),
            language=self.effective_language(),
            timestamp_granularity=self.timestamp_granularity.value,
        )


def _error_text(message: str, config: Optional[JobConfig]) -> str:
    model = config.model_id if config is not None else "the selected model"
    return (
        "Transcription failed: {}. Check that {} can be loaded by the "
        "backend, then start the job again.".format(message.rstrip("."), model)
    )


class JobController:
    """Owns the current job and the backend connection it runs on.

    Args:
        backend_factory: Zero-argument callable returning an
            InferenceBackend. Ignored when ``connection`` is given.
        connection: A pre-built BackendConnection (connected on init).
        on_message: Optional callback invoked after each handled message.
        on_error: Optional callback receiving the user-facing error text.
    """

    def __init__(
        self,
        backend_factory: Optional[BackendFactory] = None,
        connection: Optional[BackendConnection] = None,
        on_message: Optional[Callable[[object], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        if connection is None:
            if backend_factory is None:
                raise ValueError("Either backend_factory or connection is required")
            connection = BackendConnection(backend_factory)
        self._connection = connection
        self._connection.connect()
        self._on_message = on_message
        self._on_error = on_error

        self.state = JobState.IDLE
        self.is_busy = False
        self.is_model_loading = False
        self.progress = ProgressTracker()
        self.output: Optional[TranscriptResult] = None
        self.last_completed: Optional[TranscriptResult] = None
        self.config: Optional[JobConfig] = None
        self.error: Optional[str] = None
        self.source_name: Optional[str] = None

        self._handlers: Dict[type, Callable] = {
            InitiateMessage: self._on_initiate,
            ProgressMessage: self._on_progress,
            DoneMessage: self._on_done,
            ReadyMessage: self._on_ready,
            UpdateMessage: self._on_update,
            CompleteMessage: self._on_complete,
            ErrorMessage: self._on_backend_error,
        }

    def __enter__(self) -> JobController:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()

    @property
    def connection(self) -> BackendConnection:
        return self._connection

    @property
    def handled_message_types(self) -> frozenset:
        return frozenset(self._handlers)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        audio: AudioBuffer,
        config: JobConfig,
        source_name: Optional[str] = None,
    ) -> None:
        """Start transcribing ``audio`` with ``config``.

        The audio is downmixed before any state changes, so an unsupported
        channel layout leaves the controller untouched.

        Raises:
            UnsupportedChannelLayoutError: audio is neither mono nor stereo.
        """
        mono = downmix(audio)

        if self.is_busy:
            logger.info("Start requested while busy; abandoning the running job")
            self._connection.reconnect()
        elif not self._connection.connected:
            self._connection.connect()

        self.output = None
        self.progress.clear()
        self.error = None
        self.config = config
        if source_name is not None:
            self.source_name = source_name
        self.is_busy = True
        self.is_model_loading = False
        self.state = JobState.MODEL_LOADING

        self._connection.post(config.to_request(mono))
        logger.info(
            "Started job: model=%s granularity=%s samples=%d",
            config.model_id, config.timestamp_granularity.value, len(mono),
        )

    def stop(self) -> None:
        """Abandon any running job and leave a fresh backend connected."""
        self._connection.reconnect()
        self.is_busy = False
        self.is_model_loading = False
        self.progress.clear()
        self.state = JobState.IDLE
        logger.info("Stopped; backend reconnected (channel %d)", self._connection.generation)

    def close(self) -> None:
        if self._connection.connected:
            self._connection.disconnect()

    def clear_output(self) -> None:
        """Forget the visible and exported transcripts when new audio is selected."""
        self.output = None
        self.last_completed = None

    def set_source_name(self, name: Optional[str]) -> None:
        self.source_name = name

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def handle_raw(self, raw: dict):
        """Parse and apply one raw backend message.

        Returns:
            The typed message, or None when its status is not recognised.

        Raises:
            ProtocolError: known status with an invalid payload.
        """
        message = parse_message(raw)
        if message is not None:
            self.handle_message(message)
        return message

    def handle_message(self, message) -> None:  # noqa: ANN001
        logger.debug("Backend message: %s", message.status)
        self._handlers[type(message)](message)
        if self._on_message is not None:
            self._on_message(message)

    def process_pending(self, timeout: Optional[float] = 0.0) -> int:
        """Apply queued backend messages in arrival order.

        Args:
            timeout: How long to wait for the first message (0 = don't wait,
                     None = wait indefinitely). Later messages are only
                     taken if already queued.

        Returns:
            Number of raw messages taken from the connection.

        Raises:
            ProtocolError: a message had an invalid payload. Messages queued
                behind it stay on the connection for the next call.
        """
        count = 0
        raw = self._connection.receive(timeout=timeout)
        while raw is not None:
            count += 1
            self.handle_raw(raw)
            raw = self._connection.receive(timeout=0)
        return count

    def wait(self, timeout: Optional[float] = None, poll_interval: float = 0.1) -> TranscriptResult:
        """Process messages until the current job is no longer busy.

        Raises:
            TranscriptionError: the job failed or was stopped.
            TranscriptionTimeoutError: ``timeout`` elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.is_busy:
            wait_for = poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TranscriptionTimeoutError(
                        "Job still {} after {:.1f}s".format(self.state.value, timeout)
                    )
                wait_for = min(poll_interval, remaining)
            self.process_pending(timeout=wait_for)

        if self.state == JobState.ERROR:
            raise TranscriptionError(self.error)
        if self.state != JobState.COMPLETE or self.output is None:
            raise TranscriptionError("The job was stopped before it completed.")
        return self.output

    def _on_initiate(self, message: InitiateMessage) -> None:
        self.progress.add(ProgressItem(
            file=message.file,
            name=message.name,
            loaded=message.loaded,
            total=message.total,
            status=message.status,
        ))
        if self.is_busy:
            self.is_model_loading = True
            self.state = JobState.MODEL_LOADING

    def _on_progress(self, message: ProgressMessage) -> None:
        self.progress.update_progress(message.file, message.progress)

    def _on_done(self, message: DoneMessage) -> None:
        self.progress.remove(message.file)

    def _on_ready(self, message: ReadyMessage) -> None:
        self.is_model_loading = False
        if self.is_busy:
            self.state = JobState.TRANSCRIBING

    def _on_update(self, message: UpdateMessage) -> None:
        self.output = TranscriptResult(
            is_busy=True,
            text=message.text,
            chunks=message.chunks(),
        )

    def _on_complete(self, message: CompleteMessage) -> None:
        self.output = TranscriptResult(
            is_busy=False,
            text=message.data.text,
            chunks=message.chunks(),
            translated_chunks=message.translated_chunks(),
            source_name=self.source_name,
        )
        self.last_completed = self.output
        self.is_busy = False
        self.is_model_loading = False
        self.state = JobState.COMPLETE
        logger.info("Job complete: %d chunks", len(self.output.chunks))

    def _on_backend_error(self, message: ErrorMessage) -> None:
        self.is_busy = False
        self.is_model_loading = False
        self.output = None
        self.error = _error_text(message.data.message, self.config)
        self.state = JobState.ERROR
        logger.error("Backend reported an error: %s", message.data.message)
        if self._on_error is not None:
            self._on_error(self.error)

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def active_chunk_index(self, current_time: float) -> Optional[int]:
        """Index of the visible transcript's chunk playing at ``current_time``."""
        if self.output is None:
            return None
        return find_active_index(self.output.chunks, current_time)

    def export(
        self,
        keys: Optional[Iterable[str]] = None,
        translated: bool = False,
        language: Optional[str] = None,
    ) -> Dict[str, FormatterOutput]:
        """Export the last completed transcript.

        Raises:
            NoTranscriptError: nothing has completed yet, or ``translated``
                was requested but the backend sent no translated chunks.
        """
        result = self.last_completed
        if result is None:
            raise NoTranscriptError("No completed transcript to export yet.")
        chunks = result.chunks
        if translated:
            if result.translated_chunks is None:
                raise NoTranscriptError("The completed transcript has no translated chunks.")
            chunks = result.translated_chunks
        transcript = Transcript(chunks=chunks, source_name=result.source_name, language=language)
        return export_transcript(transcript, keys)
