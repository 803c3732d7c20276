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

"""Live project index.

``ProjectIndexService`` keeps the MountIndex of every root-level manifest in
step with the filesystem and caches companion module dumps for the Lua files
it contains.

All index mutation happens on one asyncio task consuming a queue of
WatchEvents, one event at a time in arrival order. Watchdog threads and
editor callbacks only enqueue. Readers (the completion resolver) run on the
same loop and therefore always see the state between two events.

Usage:
    service = ProjectIndexService(workspace_root, config, companion)
    await service.start()
    ...
    await service.stop()
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from watchdog.observers.api import ObservedWatch

from rojo_assist.companion.client import CompanionHandle, NullCompanionClient
from rojo_assist.companion.protocol import CompanionError, ModuleDump
from rojo_assist.config import AssistConfig
from rojo_assist.project.manifest import load_manifest
from rojo_assist.project.mounts import Mount, MountIndex, build_mounts, list_directory
from rojo_assist.project.watcher import (
    ChangeKind,
    DirectoryWatcher,
    WatchEvent,
    loop_sink,
)

logger = logging.getLogger(__name__)


class AnalysisCache:
    """Module dumps keyed by workspace-relative POSIX path."""

    def __init__(self):
        self._dumps: Dict[str, ModuleDump] = {}

    def get(self, path: str) -> Optional[ModuleDump]:
        return self._dumps.get(path)

    def set(self, path: str, dump: ModuleDump) -> None:
        self._dumps[path] = dump

    def drop(self, path: str) -> None:
        """Drop a path and everything beneath it."""
        prefix = path + "/"
        for key in [k for k in self._dumps if k == path or k.startswith(prefix)]:
            del self._dumps[key]

    def keys(self) -> List[str]:
        return list(self._dumps)

    def __contains__(self, path: str) -> bool:
        return path in self._dumps

    def __len__(self) -> int:
        return len(self._dumps)


class ProjectIndexService:
    """Owns the mount index, the analysis cache and the watches feeding them."""

    def __init__(
        self,
        workspace_root: Union[str, Path],
        config: Optional[AssistConfig] = None,
        companion: Optional[CompanionHandle] = None,
        watcher: Optional[DirectoryWatcher] = None,
    ):
        """Initialize the service.

        Args:
            workspace_root: Directory holding the project manifests
            config: Assist configuration
            companion: Companion used for module dumps (stand-in if None)
            watcher: Directory watcher (created on start if None)
        """
        self.root = Path(workspace_root).resolve()
        self.config = config or AssistConfig()
        self.companion: CompanionHandle = companion or NullCompanionClient("not provided")
        self.index = MountIndex()
        self.analysis = AnalysisCache()

        self._watcher = watcher
        self._watches: Dict[str, List[ObservedWatch]] = {}
        self._root_watch: Optional[ObservedWatch] = None
        self._queue: Optional[asyncio.Queue] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._analysis_tasks: Dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self) -> None:
        """Start the update loop, watch the workspace and load its manifests."""
        if self.running:
            return

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._loop_task = asyncio.create_task(self._update_loop())

        if self.config.enable_watcher:
            if self._watcher is None:
                self._watcher = DirectoryWatcher(loop_sink(loop, self._queue))
            self._root_watch = self._watcher.watch(self.root, recursive=False)

        for manifest_id in self._discover_manifests():
            self.notify(WatchEvent(ChangeKind.CREATED, self.root / manifest_id))
        await self.wait_idle()
        logger.info(f"Project index started for {self.root} ({len(self.index)} manifests)")

    async def stop(self) -> None:
        """Stop watching and cancel outstanding work."""
        if self._watcher is not None:
            self._watcher.stop()
        self._watches.clear()
        self._root_watch = None

        for task in self._analysis_tasks.values():
            task.cancel()
        self._analysis_tasks.clear()

        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        self._queue = None

    def notify(self, event: WatchEvent) -> None:
        """Queue a filesystem event for the update loop."""
        if self._queue is None:
            raise RuntimeError("Project index service is not running")
        self._queue.put_nowait(event)

    async def wait_idle(self) -> None:
        """Wait until every queued event has been applied."""
        if self._queue is not None:
            await self._queue.join()

    async def wait_analysis(self) -> None:
        """Wait for in-flight companion analyses to finish."""
        while self._analysis_tasks:
            await asyncio.gather(*self._analysis_tasks.values(), return_exceptions=True)

    def _discover_manifests(self) -> List[str]:
        try:
            return sorted(
                entry.name
                for entry in self.root.iterdir()
                if entry.is_file() and entry.name.endswith(self.config.manifest_suffix)
            )
        except OSError as e:
            logger.warning(f"Cannot list workspace {self.root}: {e}")
            return []

    def _relative(self, path: Path) -> Optional[str]:
        try:
            return Path(path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def is_manifest(self, relative: str) -> bool:
        """Only manifests at the workspace root are honoured."""
        return "/" not in relative and relative.endswith(self.config.manifest_suffix)

    def is_analyzable(self, relative: str) -> bool:
        return self.config.is_module_script(relative.rsplit("/", 1)[-1])

    async def _update_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._apply(event)
            except Exception:
                logger.exception(f"Failed to apply {event.kind.value} event for {event.path}")
            finally:
                self._queue.task_done()

    async def _apply(self, event: WatchEvent) -> None:
        relative = self._relative(event.path)
        if not relative or relative == ".":
            return

        if self.is_manifest(relative):
            if event.kind == ChangeKind.DELETED:
                self._drop_manifest(relative)
                self._prune_analysis()
            else:
                await self.reload_manifest(relative)
            return

        if event.kind == ChangeKind.CREATED:
            await self._on_created(relative, event.is_directory)
        elif event.kind == ChangeKind.MODIFIED:
            if self.index.contains(relative):
                self._schedule_analysis(relative)
        elif event.kind == ChangeKind.DELETED:
            self.index.remove_file(relative)
            self._cancel_analysis(relative)
            self.analysis.drop(relative)

    async def _on_created(self, relative: str, is_directory: bool) -> None:
        if not any(True for _ in self.index.mounts_containing(relative)):
            return

        if is_directory:
            listing = await asyncio.to_thread(list_directory, self.root / relative)
            created = [f"{relative}/{name}" for name in sorted(listing)]
        else:
            created = [relative]

        for path in created:
            if self.index.add_file(path):
                self._schedule_analysis(path)

    async def reload_manifest(self, manifest_id: str) -> None:
        """Rebuild the mounts of one manifest from disk.

        The previous mounts stay visible while the manifest is read and
        listed; the swap itself happens without yielding to the loop.
        """
        mounts: Optional[List[Mount]] = None
        manifest = await asyncio.to_thread(load_manifest, self.root / manifest_id)
        if manifest is None:
            logger.debug(f"Ignoring unparseable manifest {manifest_id}")
        elif not manifest.is_adoptable(self.config.root_class_names):
            logger.info(f"Ignoring {manifest_id}: root is {manifest.root.class_name!r}")
        else:
            mounts = await asyncio.to_thread(build_mounts, manifest, self.root)

        if mounts is None:
            self._drop_manifest(manifest_id)
            self._prune_analysis()
            return

        # New watches are taken before the old ones are released so shared
        # directories are never unscheduled in between
        previous = self._watches.pop(manifest_id, [])
        self.index.replace(manifest_id, mounts)
        self._watch_mounts(manifest_id)
        self._release_watches(previous)
        self._prune_analysis()
        logger.info(f"Adopted {manifest_id} with {len(mounts)} mounts")

        if self.config.analyze_on_build:
            for mount in mounts:
                for relative in sorted(mount.files):
                    self._schedule_analysis(mount.workspace_path(relative))

    def _drop_manifest(self, manifest_id: str) -> None:
        if self.index.remove(manifest_id) is not None:
            logger.debug(f"Dropped mounts of {manifest_id}")
        self._release_watches(self._watches.pop(manifest_id, []))

    def _release_watches(self, watches: List[ObservedWatch]) -> None:
        if self._watcher is None:
            return
        for watch in watches:
            self._watcher.unwatch(watch)

    def _watch_mounts(self, manifest_id: str) -> None:
        if not self.config.enable_watcher or self._watcher is None:
            return
        watches = []
        for directory in sorted({mount.directory for mount in self.index.get(manifest_id)}):
            watch = self._watcher.watch(self.root / directory)
            if watch is not None:
                watches.append(watch)
        self._watches[manifest_id] = watches

    def _prune_analysis(self) -> None:
        for path in self.analysis.keys():
            if not self.index.contains(path):
                self.analysis.drop(path)
        for path in [p for p in self._analysis_tasks if not self.index.contains(p)]:
            self._cancel_analysis(path)

    def _schedule_analysis(self, relative: str) -> None:
        if not self.is_analyzable(relative):
            return
        self._cancel_analysis(relative)
        task = asyncio.create_task(self._analyze(relative))
        self._analysis_tasks[relative] = task

        def _forget(done: asyncio.Task, path: str = relative) -> None:
            if self._analysis_tasks.get(path) is done:
                del self._analysis_tasks[path]

        task.add_done_callback(_forget)

    def _cancel_analysis(self, relative: str) -> None:
        prefix = relative + "/"
        for path in [p for p in self._analysis_tasks if p == relative or p.startswith(prefix)]:
            self._analysis_tasks.pop(path).cancel()

    async def _analyze(self, relative: str) -> None:
        try:
            source = await asyncio.to_thread(
                (self.root / relative).read_text, encoding="utf-8", errors="replace"
            )
        except OSError as e:
            logger.debug(f"Cannot read {relative} for analysis: {e}")
            return

        try:
            dump = await self.companion.generate_module_dump(source)
        except CompanionError as e:
            logger.debug(f"Companion could not analyze {relative}: {e}")
            return

        if not self.index.contains(relative):
            return
        if dump is None:
            self.analysis.drop(relative)
        else:
            self.analysis.set(relative, dump)
            logger.debug(f"Cached {len(dump)} members for {relative}")
