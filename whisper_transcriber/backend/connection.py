"""Owned connection to a backend running on a worker thread.

WHY: Inference is slow and must never block the foreground. The
controller needs to fire a request, keep handling its own work, and pick
up status messages as they arrive. It also needs a hard "stop" that
guarantees nothing from the abandoned job ever reaches it again.

HOW: Each connect() builds a fresh channel: a backend instance, a request
queue, an inbox queue, a cancellation event and a daemon worker thread.
The worker pulls requests and calls ``backend.run()``; the backend's
``emit`` posts into that channel's inbox. disconnect() sets the event and
drops the channel, so a still-running backend call only ever writes into
an inbox nobody reads. reconnect() = disconnect() + connect().

RULES:
- The inbox is the ONLY path from the worker thread to the foreground
- At most one channel is current; messages from older channels are lost
- Exceptions raised by the backend are logged and turned into an
  "error" message at the thread boundary
- Use as a context manager or pair connect()/disconnect() explicitly
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Dict, List, Optional

from whisper_transcriber.backend.base import BackendFactory, InferenceBackend
from whisper_transcriber.backend.messages import TranscriptionRequest

logger = logging.getLogger(__name__)

# Sentinel telling the worker loop to exit.
_SHUTDOWN = None


class BackendNotConnectedError(RuntimeError):
    """Raised when posting a request to a disconnected handle."""


class _Channel:
    """One generation of the foreground/backend link."""

    def __init__(self, backend: InferenceBackend, generation: int) -> None:
        self.backend = backend
        self.generation = generation
        self.requests: queue.Queue = queue.Queue()
        self.inbox: queue.Queue = queue.Queue()
        self.cancelled = threading.Event()
        self.thread = threading.Thread(
            target=self._serve,
            name="whisper-backend-{}".format(generation),
            daemon=True,
        )

    def emit(self, message: Dict[str, Any]) -> None:
        if self.cancelled.is_set():
            logger.debug(
                "Dropping %r emitted on closed channel %d",
                message.get("status"), self.generation,
            )
            return
        self.inbox.put(message)

    def _serve(self) -> None:
        try:
            while True:
                request = self.requests.get()
                if request is _SHUTDOWN or self.cancelled.is_set():
                    break
                try:
                    self.backend.run(request, self.emit, self.cancelled)
                except Exception as exc:
                    logger.exception("Backend failed on channel %d", self.generation)
                    self.emit({
                        "status": "error",
                        "data": {"message": str(exc) or exc.__class__.__name__},
                    })
        finally:
            self.backend.close()


class BackendConnection:
    """Explicit connect/disconnect/reconnect handle around one backend.

    Args:
        factory: Zero-argument callable returning a fresh InferenceBackend.
                 Called once per connect().
    """

    def __init__(self, factory: BackendFactory) -> None:
        self._factory = factory
        self._channel: Optional[_Channel] = None
        self._generation = 0

    def __enter__(self) -> BackendConnection:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self.connected:
            self.disconnect()

    @property
    def connected(self) -> bool:
        return self._channel is not None

    @property
    def generation(self) -> int:
        """Counter bumped by every connect(); identifies the current channel."""
        return self._generation

    def connect(self) -> None:
        if self._channel is not None:
            return
        self._generation += 1
        channel = _Channel(self._factory(), self._generation)
        channel.thread.start()
        self._channel = channel
        logger.debug("Backend channel %d connected", self._generation)

    def disconnect(self) -> None:
        """Close the current channel, abandoning any in-flight request."""
        channel = self._channel
        if channel is None:
            logger.warning("disconnect() called on a closed backend connection")
            return
        self._channel = None
        channel.cancelled.set()
        channel.requests.put(_SHUTDOWN)
        logger.debug("Backend channel %d disconnected", channel.generation)

    def reconnect(self) -> None:
        if self._channel is not None:
            self.disconnect()
        self.connect()

    def post(self, request: TranscriptionRequest) -> None:
        if self._channel is None:
            raise BackendNotConnectedError(
                "Backend is not connected; call connect() first."
            )
        self._channel.requests.put(request)

    def receive(self, timeout: Optional[float] = 0.0) -> Optional[Dict[str, Any]]:
        """Take the next inbound message.

        Args:
            timeout: 0 polls without blocking, None blocks until a message
                     arrives, a positive value blocks at most that long.

        Returns:
            The raw message dict, or None if nothing arrived in time or the
            connection is closed.
        """
        channel = self._channel
        if channel is None:
            return None
        try:
            if timeout == 0:
                return channel.inbox.get_nowait()
            return channel.inbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Dict[str, Any]]:
        """All messages currently waiting, oldest first, without blocking."""
        messages: List[Dict[str, Any]] = []
        while True:
            message = self.receive(timeout=0)
            if message is None:
                return messages
            messages.append(message)
