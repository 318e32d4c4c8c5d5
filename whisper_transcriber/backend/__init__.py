"""Backend seam — typed protocol and off-thread connection handle.

WHY: Inference happens outside this package and off the foreground
thread. This package holds everything needed to talk to it: the message
models, the abstract backend, the owned connection, and a replay backend.

HOW: messages.py defines the protocol, base.py the InferenceBackend ABC,
connection.py the worker-thread channel, replay.py a model-free backend.

RULES:
- Nothing outside connection.py touches threads or queues
- The controller only ever sees parsed messages from messages.py
"""

from whisper_transcriber.backend.base import InferenceBackend, load_backend
from whisper_transcriber.backend.connection import BackendConnection
from whisper_transcriber.backend.messages import TranscriptionRequest, parse_message

__all__ = [
    "BackendConnection",
    "InferenceBackend",
    "TranscriptionRequest",
    "load_backend",
    "parse_message",
]
