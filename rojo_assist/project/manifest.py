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

"""Rojo project manifest parsing.

A manifest's ``tree`` is a nested JSON object. Keys starting with ``$`` are
node attributes (``$className``, ``$path``); every other key names a child.
Nodes are stored in a flat arena and refer to their children by index.
Nodes without attributes or children are pruned while parsing.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ATTRIBUTE_SIGIL = "$"
CLASS_NAME_KEY = "$className"
PATH_KEY = "$path"


class InstanceNode(BaseModel):
    """One node of the manifest tree, stored in a NodeArena."""

    class_name: Optional[str] = None
    path: Optional[str] = None
    children: List[Tuple[str, int]] = Field(default_factory=list)  # (name, arena index)

    @property
    def is_empty(self) -> bool:
        return self.class_name is None and self.path is None and not self.children


class NodeArena(BaseModel):
    """Flat storage for manifest nodes; children are listed before their parents."""

    nodes: List[InstanceNode] = Field(default_factory=list)

    def add(self, node: InstanceNode) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def __getitem__(self, index: int) -> InstanceNode:
        return self.nodes[index]

    def __len__(self) -> int:
        return len(self.nodes)


class InstanceDescription:
    """Read-only view of one arena node."""

    __slots__ = ("arena", "index")

    def __init__(self, arena: NodeArena, index: int):
        self.arena = arena
        self.index = index

    @property
    def node(self) -> InstanceNode:
        return self.arena[self.index]

    @property
    def class_name(self) -> Optional[str]:
        return self.node.class_name

    @property
    def bound_path(self) -> Optional[str]:
        return self.node.path

    @property
    def children(self) -> Dict[str, "InstanceDescription"]:
        """Children in manifest order."""
        return {name: InstanceDescription(self.arena, i) for name, i in self.node.children}

    def iter_children(self) -> Iterator[Tuple[str, "InstanceDescription"]]:
        for name, i in self.node.children:
            yield name, InstanceDescription(self.arena, i)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstanceDescription):
            return NotImplemented
        return (
            self.class_name == other.class_name
            and self.bound_path == other.bound_path
            and list(self.children.items()) == list(other.children.items())
        )

    def __repr__(self) -> str:
        return (
            f"InstanceDescription(class_name={self.class_name!r}, "
            f"bound_path={self.bound_path!r}, children={list(self.children)!r})"
        )


class Manifest:
    """A parsed project manifest."""

    def __init__(self, arena: NodeArena, root_index: int, name: Optional[str] = None):
        self.arena = arena
        self.root = InstanceDescription(arena, root_index)
        self.name = name

    def is_adoptable(self, root_class_names: List[str]) -> bool:
        """Check whether the root marks this manifest as a top-level place."""
        return self.root.class_name in root_class_names


class ParseFailure(str, Enum):
    INVALID_JSON = "invalid_json"
    NOT_AN_OBJECT = "not_an_object"
    MISSING_TREE = "missing_tree"
    EMPTY_TREE = "empty_tree"


class ManifestParseError(BaseModel):
    """Why a manifest could not be parsed."""

    reason: ParseFailure
    detail: str = ""


def _normalize(source: Dict[str, Any], arena: NodeArena) -> Optional[int]:
    """Normalize one source object into the arena.

    Returns:
        Arena index of the node, or None if it turned out empty
    """
    node = InstanceNode()

    class_name = source.get(CLASS_NAME_KEY)
    if isinstance(class_name, str):
        node.class_name = class_name

    path = source.get(PATH_KEY)
    if isinstance(path, str):
        node.path = path

    for name, value in source.items():
        if name.startswith(ATTRIBUTE_SIGIL) or not isinstance(value, dict):
            continue
        child = _normalize(value, arena)
        if child is not None:
            node.children.append((name, child))

    if node.is_empty:
        return None
    return arena.add(node)


def parse_manifest_result(text: str) -> Union[Manifest, ManifestParseError]:
    """Parse manifest text into a Manifest or a structured error."""
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return ManifestParseError(reason=ParseFailure.INVALID_JSON, detail=str(e))

    if not isinstance(document, dict):
        return ManifestParseError(
            reason=ParseFailure.NOT_AN_OBJECT, detail=type(document).__name__
        )

    tree = document.get("tree")
    if not isinstance(tree, dict):
        return ManifestParseError(reason=ParseFailure.MISSING_TREE)

    arena = NodeArena()
    root_index = _normalize(tree, arena)
    if root_index is None:
        return ManifestParseError(reason=ParseFailure.EMPTY_TREE)

    name = document.get("name")
    return Manifest(arena, root_index, name if isinstance(name, str) else None)


def parse_manifest(text: str) -> Optional[Manifest]:
    """Parse manifest text, returning None for anything unusable."""
    result = parse_manifest_result(text)
    if isinstance(result, ManifestParseError):
        logger.debug(f"Manifest rejected: {result.reason.value} {result.detail}")
        return None
    return result


def load_manifest(path: Path) -> Optional[Manifest]:
    """Read and parse a manifest file; unreadable files yield None."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read manifest {path}: {e}")
        return None
    return parse_manifest(text)
