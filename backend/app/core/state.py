"""In-memory state shared by every request handled by the API process."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request


class ReadWriteLock:
    """
    Readers-writer lock: many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of reads cannot
    starve an update.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class SelectedUsername:
    """
    The ListenBrainz username whose feed ``/api/feed`` serves.

    Written by admins through ``/api/select_feed``; lives for the lifetime of
    the process and falls back to the configured default on restart.
    """

    def __init__(self, default: str) -> None:
        self._lock = ReadWriteLock()
        self._username = default

    def get(self) -> str:
        with self._lock.read_locked():
            return self._username

    def set(self, username: str) -> None:
        with self._lock.write_locked():
            self._username = username


def get_selection(request: Request) -> SelectedUsername:
    """FastAPI dependency returning the app's selection cell."""
    return request.app.state.selection
