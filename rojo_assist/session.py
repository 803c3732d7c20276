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


"""Wiring of the companion, the project index and the completion providers.

Usage:
    async with AssistSession("/path/to/place") as session:
        result = session.complete(path, line, character, text)
"""

import logging
from pathlib import Path
from typing import Optional, Union

from rojo_assist.companion.host import CompanionHost, Notifier
from rojo_assist.completion.protocol import CompletionList, CompletionParams, Position
from rojo_assist.completion.provider import CompositeCompletionProvider, create_default_provider
from rojo_assist.config import AssistConfig, load_config
from rojo_assist.project.service import ProjectIndexService

logger = logging.getLogger(__name__)


class AssistSession:
    """Owns every long-lived component for one workspace."""

    def __init__(
        self,
        workspace_root: Union[str, Path],
        config: Optional[AssistConfig] = None,
        host: Optional[CompanionHost] = None,
        notify: Optional[Notifier] = None,
    ):
        """Initialize the session.

        Args:
            workspace_root: Workspace holding the project manifests
            config: Configuration (read from the workspace if None)
            host: Companion owner (created from the config if None)
            notify: Callback for user-facing warnings
        """
        self.workspace_root = Path(workspace_root)
        self.config = config or load_config(self.workspace_root)
        self.host = host or CompanionHost(self.config.companion, notify=notify)
        self.service: Optional[ProjectIndexService] = None
        self.provider: Optional[CompositeCompletionProvider] = None

    async def __aenter__(self) -> "AssistSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def start(self) -> None:
        companion = await self.host.start()
        self.service = ProjectIndexService(self.workspace_root, self.config, companion)
        await self.service.start()
        self.provider = create_default_provider(self.service)
        logger.info(f"Session started for {self.workspace_root}")

    async def stop(self) -> None:
        if self.service is not None:
            await self.service.stop()
            self.service = None
        self.provider = None
        await self.host.stop()

    def complete(
        self, file_path: Union[str, Path], line: int, character: int, text: str
    ) -> CompletionList:
        """Complete at a position of a document's current text."""
        if self.provider is None:
            return CompletionList()
        params = CompletionParams(
            file_path=Path(file_path), position=Position(line, character), text=text
        )
        return self.provider.provide_completions(params)
