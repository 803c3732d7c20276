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

"""Rojo project model: manifests, mounts and the live index."""

from rojo_assist.project.manifest import (
    InstanceDescription,
    InstanceNode,
    Manifest,
    ManifestParseError,
    NodeArena,
    ParseFailure,
    load_manifest,
    parse_manifest,
    parse_manifest_result,
)
from rojo_assist.project.mounts import Mount, MountIndex, build_mounts, list_directory
from rojo_assist.project.service import AnalysisCache, ProjectIndexService
from rojo_assist.project.watcher import ChangeKind, DirectoryWatcher, WatchEvent

__all__ = [
    "InstanceDescription",
    "InstanceNode",
    "Manifest",
    "ManifestParseError",
    "NodeArena",
    "ParseFailure",
    "load_manifest",
    "parse_manifest",
    "parse_manifest_result",
    "Mount",
    "MountIndex",
    "build_mounts",
    "list_directory",
    "AnalysisCache",
    "ProjectIndexService",
    "ChangeKind",
    "DirectoryWatcher",
    "WatchEvent",
]
