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


"""rojo-assist: editing support for Rojo-managed Roblox Lua projects.

Keeps a live index of which files back which node of a Rojo project tree,
completes ``require`` paths against it, and asks a verified companion helper
which members each module returns.
"""

from rojo_assist.companion import CompanionConfig, CompanionHost, TrustVerifier
from rojo_assist.completion import CompletionParams, Position, create_default_provider
from rojo_assist.config import AssistConfig, load_config
from rojo_assist.project import ProjectIndexService, parse_manifest
from rojo_assist.session import AssistSession

__version__ = "0.1.0"

__all__ = [
    "AssistConfig",
    "AssistSession",
    "CompanionConfig",
    "CompanionHost",
    "CompletionParams",
    "Position",
    "ProjectIndexService",
    "TrustVerifier",
    "create_default_provider",
    "load_config",
    "parse_manifest",
]
