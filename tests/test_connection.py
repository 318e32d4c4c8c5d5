"""Tests for backend/connection.py — the owned backend handle.

WHY: stop() relies on reconnect() guaranteeing that nothing from an
abandoned job reaches the controller again. These tests pin that down
with real worker threads and short timeouts.
"""

import threading

import pytest

from conftest import BlockingBackend, ExplodingBackend, IdleBackend, ScriptedBackend
from whisper_transcriber.backend.connection import BackendConnection, BackendNotConnectedError

TIMEOUT = 2.0


def _receive_all(connection, count):
    messages = []
    for _ in range(count):
        message = connection.receive(timeout=TIMEOUT)
        assert message is not None, "backend sent {} of {} messages".format(len(messages), count)
        messages.append(message)
    return messages


class TestLifecycle:

    def test_new_connection_is_closed(self):
        connection = BackendConnection(IdleBackend)
        assert not connection.connected
        assert connection.generation == 0

    def test_connect_is_idempotent(self):
        connection = BackendConnection(IdleBackend)
        connection.connect()
        connection.connect()
        assert connection.generation == 1
        connection.disconnect()

    def test_reconnect_builds_a_new_backend(self):
        created = []

        def factory():
            backend = IdleBackend()
            created.append(backend)
            return backend

        with BackendConnection(factory) as connection:
            connection.reconnect()
            assert connection.generation == 2
            assert len(created) == 2

    def test_disconnect_closes_backend(self):
        backend = IdleBackend()
        connection = BackendConnection(lambda: backend)
        connection.connect()
        thread = connection._channel.thread
        connection.disconnect()
        thread.join(TIMEOUT)
        assert backend.closed
        assert not connection.connected

    def test_disconnect_twice_is_harmless(self):
        connection = BackendConnection(IdleBackend)
        connection.connect()
        connection.disconnect()
        connection.disconnect()
        assert not connection.connected

    def test_post_requires_connection(self):
        connection = BackendConnection(IdleBackend)
        with pytest.raises(BackendNotConnectedError):
            connection.post(object())

    def test_receive_on_closed_connection(self):
        assert BackendConnection(IdleBackend).receive(timeout=0) is None


class TestMessaging:

    def test_messages_arrive_in_order(self):
        script = [{"status": "ready"}, {"status": "done", "file": "a"}]
        with BackendConnection(lambda: ScriptedBackend(script)) as connection:
            connection.post(object())
            assert _receive_all(connection, 2) == script

    def test_receive_nowait_when_empty(self):
        with BackendConnection(IdleBackend) as connection:
            assert connection.receive(timeout=0) is None
            assert connection.drain() == []

    def test_backend_exception_becomes_error_message(self):
        with BackendConnection(ExplodingBackend) as connection:
            connection.post(object())
            message = connection.receive(timeout=TIMEOUT)
        assert message == {"status": "error", "data": {"message": "out of memory"}}

    def test_reconnect_drops_messages_from_old_channel(self):
        backend = BlockingBackend()
        backends = iter([backend, IdleBackend()])
        with BackendConnection(lambda: next(backends)) as connection:
            connection.post(object())
            assert connection.receive(timeout=TIMEOUT)["status"] == "initiate"
            assert backend.started.wait(TIMEOUT)

            connection.reconnect()
            assert backend.finished.wait(TIMEOUT)

            # the old job's "complete" was emitted after cancellation
            assert connection.receive(timeout=0.1) is None

    def test_cancel_event_is_set_on_disconnect(self):
        running = threading.Event()
        seen = threading.Event()

        class Watcher(IdleBackend):
            def run(self, request, emit, cancelled):
                running.set()
                cancelled.wait(TIMEOUT)
                if cancelled.is_set():
                    seen.set()

        connection = BackendConnection(Watcher)
        connection.connect()
        connection.post(object())
        assert running.wait(TIMEOUT)
        connection.disconnect()
        assert seen.wait(TIMEOUT)
