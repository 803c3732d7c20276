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

"""Workspace configuration for rojo-assist.

Settings are read from an optional ``.rojo-assist.yaml`` at the workspace
root. Every field has a default, so a workspace without the file behaves
like a stock Rojo project.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from rojo_assist.companion.config import CompanionConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".rojo-assist.yaml"


class AssistConfig(BaseModel):
    """Configuration for the project index and completion providers."""

    manifest_suffix: str = Field(
        default=".project.json",
        description="File name suffix identifying project manifests at the workspace root",
    )
    root_class_names: List[str] = Field(
        default_factory=lambda: ["DataModel"],
        description="Root $className values that mark a manifest as a top-level place",
    )
    root_aliases: List[str] = Field(
        default_factory=lambda: ["game"],
        description="Leading names in require paths that refer to the manifest root itself",
    )
    source_extension: str = Field(
        default=".lua", description="Extension of script files that can be required"
    )
    platform_suffixes: List[str] = Field(
        default_factory=lambda: [".server", ".client"],
        description="Stem suffixes marking scripts that only run on one side",
    )
    entry_file_pattern: str = Field(
        default=r"init(\.server|\.client)?\.lua|init\.meta\.json",
        description="Regex (full match) for files that represent their containing folder",
    )
    analyze_on_build: bool = Field(
        default=True,
        description="Send every eligible file to the companion when a manifest is adopted",
    )
    enable_watcher: bool = Field(
        default=True, description="Watch mounted directories for changes"
    )
    companion: CompanionConfig = Field(
        default_factory=CompanionConfig, description="Companion helper settings"
    )

    def entry_file_regex(self) -> "re.Pattern[str]":
        return re.compile(self.entry_file_pattern)

    def is_entry_file(self, name: str) -> bool:
        """Check whether a bare file name is a module-entry file."""
        return self.entry_file_regex().fullmatch(name) is not None

    def strip_extension(self, name: str) -> str:
        """Drop the final extension from a file name (``a.server.lua`` -> ``a.server``)."""
        stem, dot, _ = name.rpartition(".")
        return stem if dot and stem else name

    def has_platform_suffix(self, name: str) -> bool:
        stem = self.strip_extension(name)
        return any(stem.endswith(suffix) for suffix in self.platform_suffixes)

    def is_module_script(self, name: str) -> bool:
        """Check whether a file name is a requireable source file."""
        return name.endswith(self.source_extension) and not self.has_platform_suffix(name)


def load_config(workspace_root: Union[str, Path], path: Optional[Path] = None) -> AssistConfig:
    """Load configuration for a workspace.

    Args:
        workspace_root: Root directory of the workspace
        path: Explicit config file (defaults to ``.rojo-assist.yaml`` in the root)

    Returns:
        Parsed configuration, or defaults when the file is missing or invalid
    """
    config_path = path or Path(workspace_root) / CONFIG_FILE_NAME
    if not config_path.is_file():
        return AssistConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to read {config_path}: {e}")
        return AssistConfig()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring {config_path}: expected a mapping at the top level")
        return AssistConfig()

    try:
        config = AssistConfig(**data)
    except ValidationError as e:
        logger.warning(f"Invalid configuration in {config_path}: {e}")
        return AssistConfig()

    logger.debug(f"Loaded configuration from {config_path}")
    return config
