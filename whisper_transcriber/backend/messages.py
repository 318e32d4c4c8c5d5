"""Typed message protocol between the job controller and the backend.

WHY: The backend reports everything — model downloads, readiness, partial
and final transcripts, failures — as status-tagged dicts. Parsing them
into a closed set of models means the controller dispatches on a type,
never on an open-ended string, and a malformed payload fails loudly at
the boundary instead of deep inside a handler.

HOW: One pydantic model per status, joined in a discriminated union on
``status``. parse_message() returns None for statuses outside the union
(they are ignored by design of the protocol) and raises ProtocolError for
a known status whose payload does not validate. The outbound request is a
plain dataclass because it carries a numpy sample array.

RULES:
- Wire chunk shape: {"text": str, "timestamp": [start, end|null]}
- Translated chunks arrive as "tchunks" (or "translatedChunks")
- Unknown extra fields on any message are ignored
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

import numpy as np
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from whisper_transcriber.core.ir import Chunk

logger = logging.getLogger(__name__)


class ProtocolError(ValueError):
    """Raised when a message with a known status has an invalid payload."""


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


@dataclass
class TranscriptionRequest:
    """A request to transcribe one mono buffer.

    RULES:
    - audio is float32 mono at config.SAMPLING_RATE
    - subtask and language are None unless the model is multilingual
    """

    audio: np.ndarray
    model: str
    multilingual: bool
    quantized: bool
    subtask: Optional[str]
    language: Optional[str]
    timestamp_granularity: str

    def to_message(self) -> Dict[str, Any]:
        return {
            "audio": self.audio,
            "model": self.model,
            "multilingual": self.multilingual,
            "quantized": self.quantized,
            "subtask": self.subtask,
            "language": self.language,
            "timestampGranularity": self.timestamp_granularity,
        }


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


class _Message(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class WireChunk(_Message):
    text: str
    timestamp: Tuple[float, Optional[float]]

    def to_chunk(self) -> Chunk:
        return Chunk(text=self.text, start_time=self.timestamp[0], end_time=self.timestamp[1])


class InitiateMessage(_Message):
    """An asset download is starting."""

    status: Literal["initiate"]
    file: str
    name: str = ""
    loaded: int = 0
    total: int = 0


class ProgressMessage(_Message):
    status: Literal["progress"]
    file: str
    progress: float = Field(ge=0, le=100)


class DoneMessage(_Message):
    status: Literal["done"]
    file: str


class ReadyMessage(_Message):
    """Model initialised; inference is starting."""

    status: Literal["ready"]


class UpdatePayload(_Message):
    chunks: List[WireChunk] = Field(default_factory=list)


class UpdateMessage(_Message):
    """Partial transcript: ``data`` is ``[text, {"chunks": [...]}]``."""

    status: Literal["update"]
    data: Tuple[str, UpdatePayload]

    @property
    def text(self) -> str:
        return self.data[0]

    def chunks(self) -> List[Chunk]:
        return [c.to_chunk() for c in self.data[1].chunks]


class CompletePayload(_Message):
    text: str
    chunks: List[WireChunk] = Field(default_factory=list)
    translated_chunks: Optional[List[WireChunk]] = Field(
        default=None,
        validation_alias=AliasChoices("tchunks", "translatedChunks", "translated_chunks"),
    )


class CompleteMessage(_Message):
    status: Literal["complete"]
    data: CompletePayload

    def chunks(self) -> List[Chunk]:
        return [c.to_chunk() for c in self.data.chunks]

    def translated_chunks(self) -> Optional[List[Chunk]]:
        if self.data.translated_chunks is None:
            return None
        return [c.to_chunk() for c in self.data.translated_chunks]


class ErrorPayload(_Message):
    message: str


class ErrorMessage(_Message):
    status: Literal["error"]
    data: ErrorPayload


MESSAGE_TYPES = (
    InitiateMessage,
    ProgressMessage,
    DoneMessage,
    ReadyMessage,
    UpdateMessage,
    CompleteMessage,
    ErrorMessage,
)

BackendMessage = Annotated[
    Union[
        InitiateMessage,
        ProgressMessage,
        DoneMessage,
        ReadyMessage,
        UpdateMessage,
        CompleteMessage,
        ErrorMessage,
    ],
    Field(discriminator="status"),
]

KNOWN_STATUSES = frozenset(
    cls.model_fields["status"].annotation.__args__[0] for cls in MESSAGE_TYPES
)

_ADAPTER: TypeAdapter = TypeAdapter(BackendMessage)


def parse_message(raw: Any) -> Optional[BackendMessage]:
    """Validate a raw backend dict into a typed message.

    Returns:
        The typed message, or None when ``status`` is missing or unknown.

    Raises:
        ProtocolError: The status is known but the payload is invalid.
    """
    status = raw.get("status") if isinstance(raw, dict) else None
    if status not in KNOWN_STATUSES:
        logger.debug("Ignoring backend message with status %r", status)
        return None
    try:
        return _ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise ProtocolError(
            "Malformed {!r} message from backend: {}".format(status, exc)
        ) from exc
