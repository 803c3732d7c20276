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

"""Completion protocol types.

Kinds use the LSP CompletionItemKind numbering so an editor bridge can pass
them through unchanged.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import List, Optional


class CompletionItemKind(IntEnum):
    METHOD = 2
    FUNCTION = 3
    FIELD = 5
    MODULE = 9
    FILE = 17
    FOLDER = 19


@dataclass
class Position:
    """Zero-based line/character position."""

    line: int
    character: int


@dataclass
class CompletionItem:
    label: str
    kind: CompletionItemKind
    detail: Optional[str] = None


@dataclass
class CompletionList:
    items: List[CompletionItem] = field(default_factory=list)
    is_incomplete: bool = False


@dataclass
class CompletionParams:
    """A completion request against the current document text."""

    file_path: Path
    position: Position
    text: str
    max_results: int = 200

    @property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    @property
    def line_prefix(self) -> str:
        """Text of the cursor line up to the cursor."""
        lines = self.lines
        if self.position.line >= len(lines):
            return ""
        return lines[self.position.line][: self.position.character]


@dataclass
class CompletionCapabilities:
    trigger_characters: List[str] = field(default_factory=list)
    supported_languages: List[str] = field(default_factory=list)
