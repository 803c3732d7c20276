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


"""Completion of Rojo require paths and required-module members.

Example usage:
    from rojo_assist.completion import CompletionParams, Position, create_default_provider

    provider = create_default_provider(service)
    result = provider.provide_completions(
        CompletionParams(file_path=path, position=Position(line, character), text=text)
    )
"""

from rojo_assist.completion.protocol import (
    CompletionCapabilities,
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionParams,
    Position,
)
from rojo_assist.completion.provider import (
    BaseCompletionProvider,
    CompositeCompletionProvider,
    ModuleMemberCompletionProvider,
    RequirePathCompletionProvider,
    create_default_provider,
)
from rojo_assist.completion.resolver import (
    complete_members,
    complete_path,
    find_require_alias,
    resolve_module_file,
)

__all__ = [
    # Protocol types
    "CompletionCapabilities",
    "CompletionItem",
    "CompletionItemKind",
    "CompletionList",
    "CompletionParams",
    "Position",
    # Providers
    "BaseCompletionProvider",
    "CompositeCompletionProvider",
    "ModuleMemberCompletionProvider",
    "RequirePathCompletionProvider",
    "create_default_provider",
    # Resolution
    "complete_members",
    "complete_path",
    "find_require_alias",
    "resolve_module_file",
]
