# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Tests for watchdog event forwarding."""

import asyncio
import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from rojo_assist.project.watcher import (
    ChangeKind,
    DirectoryWatcher,
    ForwardingHandler,
    WatchEvent,
    loop_sink,
)


class TestForwardingHandler:
    """Tests for translating watchdog events."""

    def setup_method(self):
        self.events = []
        self.handler = ForwardingHandler(self.events.append)

    def test_created_and_deleted(self):
        self.handler.dispatch(FileCreatedEvent("/w/a.lua"))
        self.handler.dispatch(FileDeletedEvent("/w/a.lua"))
        assert self.events == [
            WatchEvent(ChangeKind.CREATED, Path("/w/a.lua")),
            WatchEvent(ChangeKind.DELETED, Path("/w/a.lua")),
        ]

    def test_directory_modifications_are_dropped(self):
        self.handler.dispatch(DirModifiedEvent("/w/src"))
        self.handler.dispatch(FileModifiedEvent("/w/src/a.lua"))
        assert self.events == [WatchEvent(ChangeKind.MODIFIED, Path("/w/src/a.lua"))]

    def test_move_is_delete_then_create(self):
        self.handler.dispatch(FileMovedEvent("/w/a.lua", "/w/b.lua"))
        assert [(e.kind, e.path.name) for e in self.events] == [
            (ChangeKind.DELETED, "a.lua"),
            (ChangeKind.CREATED, "b.lua"),
        ]

    def test_flat_watch_skips_directories(self):
        handler = ForwardingHandler(self.events.append, directories=False)
        handler.dispatch(DirCreatedEvent("/w/sub"))
        assert self.events == []


@pytest.mark.asyncio
async def test_loop_sink_enqueues_from_other_threads():
    queue = asyncio.Queue()
    sink = loop_sink(asyncio.get_running_loop(), queue)
    event = WatchEvent(ChangeKind.CREATED, Path("/w/a.lua"))

    await asyncio.to_thread(sink, event)

    assert await asyncio.wait_for(queue.get(), timeout=5) == event


def _wait_for(predicate, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.05)
    return True


class TestDirectoryWatcher:
    def test_watch_and_stop(self, tmp_path):
        watcher = DirectoryWatcher(lambda event: None)
        watch = watcher.watch(tmp_path)
        try:
            assert watch is not None
            assert watcher.running
            watcher.unwatch(watch)
            # Second removal is tolerated
            watcher.unwatch(watch)
        finally:
            watcher.stop()
        assert not watcher.running

    def test_failed_watch_returns_none(self, tmp_path, monkeypatch):
        watcher = DirectoryWatcher(lambda event: None)
        watcher.start()

        def refuse(*args, **kwargs):
            raise OSError("inotify watch limit reached")

        monkeypatch.setattr(watcher._observer, "schedule", refuse)
        try:
            assert watcher.watch(tmp_path) is None
        finally:
            watcher.stop()

    def test_shared_watch_survives_one_release(self, tmp_path):
        events = []
        watcher = DirectoryWatcher(events.append)
        try:
            first = watcher.watch(tmp_path)
            second = watcher.watch(tmp_path)
            assert first == second
            assert watcher.watch_count(first) == 2

            watcher.unwatch(first)
            assert watcher.watch_count(first) == 1
            (tmp_path / "a.lua").write_text("")
            assert _wait_for(lambda: any(e.path.name == "a.lua" for e in events))

            watcher.unwatch(second)
            assert watcher.watch_count(first) == 0
        finally:
            watcher.stop()

    def test_flat_and_recursive_watches_are_separate(self, tmp_path):
        watcher = DirectoryWatcher(lambda event: None)
        try:
            flat = watcher.watch(tmp_path, recursive=False)
            deep = watcher.watch(tmp_path)
            assert watcher.watch_count(flat) == 1
            assert watcher.watch_count(deep) == 1
        finally:
            watcher.stop()
