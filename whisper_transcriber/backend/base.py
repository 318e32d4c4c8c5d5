"""Abstract inference backend and import-path loading.

WHY: The neural inference implementation (model download, tokenization,
decoding) is not part of this package. The job controller only needs
something that accepts a request and emits status messages, so the
backend is a small abstract seam that deployments fill in.

HOW: InferenceBackend is an ABC with a single ``run()`` method that is
called on the connection's worker thread. load_backend() resolves a
``"module:attr"`` import path to a backend factory (a subclass or any
zero-argument callable returning an InferenceBackend).

RULES:
- run() executes off the foreground thread and must only talk to the
  controller through ``emit``
- run() should check ``cancelled`` between expensive steps; once it is
  set, anything emitted is dropped
- Raising from run() is reported to the controller as an "error" message
"""

from __future__ import annotations

import importlib
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

from whisper_transcriber.backend.messages import TranscriptionRequest

Emit = Callable[[Dict[str, Any]], None]
BackendFactory = Callable[[], "InferenceBackend"]


class BackendLoadError(ValueError):
    """Raised when a backend import path cannot be resolved."""


class InferenceBackend(ABC):
    """Abstract speech-recognition backend.

    To plug in a real model:
    1. Subclass InferenceBackend
    2. Implement run(): emit initiate/progress/done while loading assets,
       "ready" once the model is loaded, "update" for partial results and
       finally "complete" (or raise)
    3. Point WHISPER_BACKEND (or ``--backend``) at "package.module:Class"
    """

    @abstractmethod
    def run(
        self,
        request: TranscriptionRequest,
        emit: Emit,
        cancelled: threading.Event,
    ) -> None:
        """Transcribe ``request.audio``, reporting through ``emit``."""

    def close(self) -> None:
        """Release model resources when the connection is torn down."""


def load_backend(import_path: str) -> BackendFactory:
    """Resolve ``"package.module:attr"`` to a backend factory.

    Raises:
        BackendLoadError: Malformed path, missing module, or missing attribute.
    """
    module_name, sep, attr = import_path.partition(":")
    if not sep or not module_name or not attr:
        raise BackendLoadError(
            "Backend must be given as 'module:attr', got {!r}".format(import_path)
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise BackendLoadError(
            "Cannot import backend module {!r}: {}".format(module_name, exc)
        ) from exc
    try:
        factory = getattr(module, attr)
    except AttributeError as exc:
        raise BackendLoadError(
            "Module {!r} has no attribute {!r}".format(module_name, attr)
        ) from exc
    if not callable(factory):
        raise BackendLoadError("{!r} is not callable".format(import_path))
    return factory
