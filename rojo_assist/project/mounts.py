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

"""Mounts: manifest nodes bound to directories, with their live file sets.

File paths inside a Mount are POSIX paths relative to the mount directory.
Paths handed to MountIndex are POSIX paths relative to the workspace root.
"""

import logging
import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from rojo_assist.project.manifest import InstanceDescription, Manifest

logger = logging.getLogger(__name__)


def normalize_directory(path: str) -> str:
    """Normalise a manifest ``$path`` into a clean POSIX relative path."""
    normalized = posixpath.normpath(path.replace("\\", "/"))
    return "" if normalized == "." else normalized


@dataclass
class Mount:
    """A manifest node bound to a directory."""

    components: Tuple[str, ...]  # names from the manifest root to this node
    directory: str  # workspace-relative, POSIX
    files: Set[str] = field(default_factory=set)  # relative to directory

    def relative_to_mount(self, workspace_path: str) -> Optional[str]:
        """Convert a workspace-relative path to a mount-relative one.

        Returns:
            The mount-relative path, or None if the path is outside this mount
        """
        if not self.directory:
            return workspace_path
        prefix = self.directory + "/"
        if workspace_path.startswith(prefix):
            return workspace_path[len(prefix) :]
        return None

    def workspace_path(self, relative: str) -> str:
        return posixpath.join(self.directory, relative) if self.directory else relative


def list_directory(directory: Path) -> Set[str]:
    """Recursively list files under a directory as POSIX relative paths.

    Missing or unreadable directories yield an empty set.
    """
    files: Set[str] = set()
    if not directory.is_dir():
        return files

    def on_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable path {error.filename}: {error}")

    for dirpath, _dirnames, filenames in os.walk(directory, onerror=on_error):
        base = Path(dirpath)
        for filename in filenames:
            files.add((base / filename).relative_to(directory).as_posix())
    return files


def _collect(
    description: InstanceDescription,
    components: Tuple[str, ...],
    workspace_root: Path,
    mounts: List[Mount],
) -> None:
    if description.bound_path is not None:
        directory = normalize_directory(description.bound_path)
        mounts.append(
            Mount(
                components=components,
                directory=directory,
                files=list_directory(workspace_root / directory),
            )
        )

    # Nested mounts are independent of their parent mount
    for name, child in description.iter_children():
        _collect(child, components + (name,), workspace_root, mounts)


def build_mounts(manifest: Manifest, workspace_root: Path) -> List[Mount]:
    """Discover every bound node of a manifest, depth first, and list its files."""
    mounts: List[Mount] = []
    _collect(manifest.root, (), Path(workspace_root), mounts)
    return mounts


class MountIndex:
    """Mounts of every tracked manifest, keyed by manifest identity."""

    def __init__(self):
        self._entries: Dict[str, List[Mount]] = {}

    def replace(self, manifest_id: str, mounts: List[Mount]) -> None:
        self._entries[manifest_id] = mounts

    def remove(self, manifest_id: str) -> Optional[List[Mount]]:
        return self._entries.pop(manifest_id, None)

    def manifests(self) -> List[str]:
        return list(self._entries)

    def get(self, manifest_id: str) -> List[Mount]:
        return self._entries.get(manifest_id, [])

    def mounts(self) -> Iterator[Mount]:
        for mounts in self._entries.values():
            yield from mounts

    def mounts_containing(self, workspace_path: str) -> Iterator[Tuple[Mount, str]]:
        """Yield (mount, mount-relative path) for every mount holding a path."""
        for mount in self.mounts():
            relative = mount.relative_to_mount(workspace_path)
            if relative:
                yield mount, relative

    def add_file(self, workspace_path: str) -> bool:
        """Record a created file in every mount that contains it."""
        added = False
        for mount, relative in self.mounts_containing(workspace_path):
            mount.files.add(relative)
            added = True
        return added

    def remove_file(self, workspace_path: str) -> bool:
        """Forget a deleted file (or every file under a deleted directory)."""
        removed = False
        for mount in self.mounts():
            # The mount directory itself (or an ancestor) went away
            if mount.files and (
                mount.directory == workspace_path
                or mount.directory.startswith(workspace_path + "/")
            ):
                mount.files.clear()
                removed = True
        for mount, relative in self.mounts_containing(workspace_path):
            prefix = relative + "/"
            stale = {f for f in mount.files if f == relative or f.startswith(prefix)}
            if stale:
                mount.files -= stale
                removed = True
        return removed

    def contains(self, workspace_path: str) -> bool:
        return any(
            relative in mount.files for mount, relative in self.mounts_containing(workspace_path)
        )

    def __len__(self) -> int:
        return len(self._entries)
