"""Unit tests for the lock-guarded selected username."""

import threading
import time

from backend.app.core.state import ReadWriteLock, SelectedUsername


class TestSelectedUsername:
    def test_starts_with_default(self):
        assert SelectedUsername("xcrochet").get() == "xcrochet"

    def test_set_then_get(self):
        selection = SelectedUsername("xcrochet")

        selection.set("alice")

        assert selection.get() == "alice"

    def test_empty_username_is_stored(self):
        selection = SelectedUsername("xcrochet")

        selection.set("")

        assert selection.get() == ""

    def test_concurrent_reads_and_writes_see_whole_values(self):
        selection = SelectedUsername("alice")
        names = {"alice", "bob"}
        seen = set()
        errors = []

        def writer():
            for i in range(500):
                selection.set("alice" if i % 2 else "bob")

        def reader():
            for _ in range(500):
                value = selection.get()
                seen.add(value)
                if value not in names:
                    errors.append(value)

        threads = [threading.Thread(target=writer) for _ in range(2)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert not errors
        assert seen <= names
        assert selection.get() in names


class TestReadWriteLock:
    def test_readers_share_the_lock(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=5)

        def reader():
            with lock.read_locked():
                # Both readers must be inside at once for the barrier to pass.
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert not inside.broken

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_write()

        def reader():
            with lock.read_locked():
                events.append("read")

        thread = threading.Thread(target=reader)
        thread.start()
        time.sleep(0.05)
        events.append("write-done")
        lock.release_write()
        thread.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                events.append("write")

        def late_reader():
            with lock.read_locked():
                events.append("read")

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        time.sleep(0.05)
        reader_thread = threading.Thread(target=late_reader)
        reader_thread.start()
        time.sleep(0.05)

        assert events == []
        lock.release_read()
        writer_thread.join(timeout=5)
        reader_thread.join(timeout=5)

        assert events == ["write", "read"]
