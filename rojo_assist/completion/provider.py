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

"""Completion providers for require paths and module members.

Providers answer from the project index's current state; they never touch
the filesystem or wait on the companion.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from rojo_assist.completion.protocol import (
    CompletionCapabilities,
    CompletionItem,
    CompletionList,
    CompletionParams,
)
from rojo_assist.completion.resolver import (
    complete_members,
    complete_path,
    find_require_alias,
    resolve_module_file,
    strip_root_alias,
)
from rojo_assist.project.service import ProjectIndexService

logger = logging.getLogger(__name__)

# require(Service.Folder.Partial  -> ("Service.Folder", "Partial")
REQUIRE_PATH = re.compile(r"require\s*\(\s*(?P<typed>[A-Za-z_]\w*(?:\.\w+)*)\.(?P<partial>\w*)$")

# Alias.partial / Alias:partial at the end of the line prefix
MEMBER_ACCESS = re.compile(r"(?<![\w.:])(?P<alias>[A-Za-z_]\w*)(?P<sep>[.:])(?P<partial>\w*)$")


class BaseCompletionProvider(ABC):
    """Abstract base class for completion providers."""

    def __init__(self, priority: int = 50):
        """Initialize the provider.

        Args:
            priority: Provider priority (default 50, range 0-100)
        """
        self._priority = priority
        self._enabled = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this provider."""
        ...

    @property
    def priority(self) -> int:
        """Provider priority (higher = checked first)."""
        return self._priority

    @priority.setter
    def priority(self, value: int) -> None:
        self._priority = max(0, min(100, value))

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @abstractmethod
    def get_capabilities(self) -> CompletionCapabilities:
        """Return the capabilities of this provider."""
        ...

    @abstractmethod
    def provide_completions(self, params: CompletionParams) -> CompletionList:
        """Provide completion items for the given parameters."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, priority={self.priority})"


class RequirePathCompletionProvider(BaseCompletionProvider):
    """Completes the segments of ``require(A.B.`` from the mount index."""

    def __init__(self, service: ProjectIndexService, priority: int = 60):
        super().__init__(priority)
        self._service = service

    @property
    def name(self) -> str:
        return "require_path"

    def get_capabilities(self) -> CompletionCapabilities:
        return CompletionCapabilities(trigger_characters=["."], supported_languages=["lua"])

    def provide_completions(self, params: CompletionParams) -> CompletionList:
        match = REQUIRE_PATH.search(params.line_prefix)
        if match is None:
            return CompletionList()

        tokens = strip_root_alias(match.group("typed").split("."), self._service.config)
        items = complete_path(self._service.index, tokens, self._service.config)
        return CompletionList(items=items)


class ModuleMemberCompletionProvider(BaseCompletionProvider):
    """Completes ``Alias.`` / ``Alias:`` for locals bound to a required module."""

    def __init__(self, service: ProjectIndexService, priority: int = 50):
        super().__init__(priority)
        self._service = service

    @property
    def name(self) -> str:
        return "module_members"

    def get_capabilities(self) -> CompletionCapabilities:
        return CompletionCapabilities(trigger_characters=[".", ":"], supported_languages=["lua"])

    def provide_completions(self, params: CompletionParams) -> CompletionList:
        prefix = params.line_prefix
        if REQUIRE_PATH.search(prefix):
            return CompletionList()
        match = MEMBER_ACCESS.search(prefix)
        if match is None:
            return CompletionList()

        target = find_require_alias(params.lines, match.group("alias"), params.position.line)
        if target is None:
            return CompletionList()

        config = self._service.config
        path = resolve_module_file(self._service.index, strip_root_alias(target, config), config)
        if path is None:
            logger.debug(f"No module file for require({'.'.join(target)})")
            return CompletionList()

        dump = self._service.analysis.get(path)
        if dump is None:
            return CompletionList()
        return CompletionList(items=complete_members(dump, match.group("sep")))


class CompositeCompletionProvider(BaseCompletionProvider):
    """Provider that combines results from multiple providers."""

    def __init__(self, providers: Optional[List[BaseCompletionProvider]] = None):
        super().__init__(priority=100)
        self._providers: List[BaseCompletionProvider] = []
        for provider in providers or []:
            self.add_provider(provider)

    @property
    def name(self) -> str:
        return "composite"

    @property
    def providers(self) -> List[BaseCompletionProvider]:
        return list(self._providers)

    def add_provider(self, provider: BaseCompletionProvider) -> None:
        self._providers.append(provider)
        self._providers.sort(key=lambda p: p.priority, reverse=True)

    def remove_provider(self, name: str) -> bool:
        for i, provider in enumerate(self._providers):
            if provider.name == name:
                del self._providers[i]
                return True
        return False

    def get_capabilities(self) -> CompletionCapabilities:
        trigger_chars: set = set()
        languages: set = set()
        for provider in self._providers:
            if provider.enabled:
                caps = provider.get_capabilities()
                trigger_chars.update(caps.trigger_characters)
                languages.update(caps.supported_languages)
        return CompletionCapabilities(
            trigger_characters=sorted(trigger_chars), supported_languages=sorted(languages)
        )

    def provide_completions(self, params: CompletionParams) -> CompletionList:
        """Aggregate completions, keeping the first item seen for each label."""
        items: List[CompletionItem] = []
        seen: set = set()
        is_incomplete = False

        for provider in self._providers:
            if not provider.enabled:
                continue
            result = provider.provide_completions(params)
            is_incomplete |= result.is_incomplete
            for item in result.items:
                if item.label not in seen:
                    seen.add(item.label)
                    items.append(item)

        if len(items) > params.max_results:
            items = items[: params.max_results]
            is_incomplete = True
        return CompletionList(items=items, is_incomplete=is_incomplete)


def create_default_provider(service: ProjectIndexService) -> CompositeCompletionProvider:
    """Composite of the require-path and module-member providers."""
    return CompositeCompletionProvider(
        [RequirePathCompletionProvider(service), ModuleMemberCompletionProvider(service)]
    )
