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

"""Filesystem watching using watchdog.

Watchdog delivers events on its own observer thread. Handlers here never
touch index state: they only hand a WatchEvent to the asyncio loop, where a
single consumer applies it.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class WatchEvent:
    """A filesystem change, as seen by the update loop."""

    kind: ChangeKind
    path: Path  # absolute
    is_directory: bool = False


EventSink = Callable[[WatchEvent], None]


def loop_sink(loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[WatchEvent]") -> EventSink:
    """Build a thread-safe sink that enqueues events on an asyncio loop."""

    def sink(event: WatchEvent) -> None:
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(queue.put_nowait, event)

    return sink


class ForwardingHandler(FileSystemEventHandler):
    """Watchdog handler that forwards events to a sink."""

    def __init__(self, sink: EventSink, directories: bool = True):
        super().__init__()
        self._sink = sink
        self._directories = directories

    def _emit(self, kind: ChangeKind, path, is_directory: bool) -> None:
        if is_directory and not self._directories:
            return
        if isinstance(path, bytes):
            path = path.decode()
        self._sink(WatchEvent(kind, Path(path), is_directory))

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit(ChangeKind.CREATED, event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory modifications only mean their listing changed
        if not event.is_directory:
            self._emit(ChangeKind.MODIFIED, event.src_path, False)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit(ChangeKind.DELETED, event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._emit(ChangeKind.DELETED, event.src_path, event.is_directory)
        self._emit(ChangeKind.CREATED, event.dest_path, event.is_directory)


class DirectoryWatcher:
    """One watchdog observer shared by every watched directory.

    Watchdog keys a watch by (path, recursive), and unscheduling it removes
    every handler on that key. Watches are therefore reference counted: a
    directory requested by several callers is scheduled once and only
    unscheduled when the last of them lets go.
    """

    def __init__(self, sink: EventSink):
        self._sink = sink
        self._observer: Optional[Observer] = None
        self._watches: Dict[Tuple[str, bool], ObservedWatch] = {}
        self._refs: Dict[ObservedWatch, int] = {}

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.daemon = True
        self._observer.start()

    def watch(self, directory: Path, recursive: bool = True) -> Optional[ObservedWatch]:
        """Start watching a directory, or share an existing watch on it.

        Returns:
            The watch handle, or None if the watch could not be set up
        """
        if self._observer is None:
            self.start()

        key = (str(directory), recursive)
        watch = self._watches.get(key)
        if watch is not None:
            self._refs[watch] += 1
            return watch

        handler = ForwardingHandler(self._sink, directories=recursive)
        try:
            watch = self._observer.schedule(handler, str(directory), recursive=recursive)
        except OSError as e:
            logger.warning(f"Cannot watch {directory}, its listing will not update: {e}")
            return None

        self._watches[key] = watch
        self._refs[watch] = 1
        logger.debug(f"Watching {directory}")
        return watch

    def watch_count(self, watch: ObservedWatch) -> int:
        """Number of holders still sharing a watch."""
        return self._refs.get(watch, 0)

    def unwatch(self, watch: ObservedWatch) -> None:
        """Release one hold on a watch, unscheduling it with the last one."""
        count = self._refs.get(watch, 0)
        if count > 1:
            self._refs[watch] = count - 1
            return

        self._refs.pop(watch, None)
        for key in [k for k, w in self._watches.items() if w == watch]:
            del self._watches[key]
        if self._observer is None:
            return
        try:
            self._observer.unschedule(watch)
        except KeyError:
            logger.debug(f"Watch {watch.path} was already removed")

    def stop(self) -> None:
        self._watches.clear()
        self._refs.clear()
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        observer.stop()
        observer.join(timeout=5)
