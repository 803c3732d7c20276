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

"""Resolution of dotted require paths against the mount index.

A require path such as ``ReplicatedStorage.Shared.Util`` addresses a node of
the manifest tree. The deepest mount whose components prefix the path owns
it; the rest of the path (the residual) is a directory path inside that
mount. Everything here reads the in-memory index only.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from rojo_assist.companion.protocol import MemberType, ModuleDump
from rojo_assist.completion.protocol import CompletionItem, CompletionItemKind
from rojo_assist.config import AssistConfig
from rojo_assist.project.mounts import Mount, MountIndex

logger = logging.getLogger(__name__)

# Higher wins when two files suggest the same name
KIND_PRECEDENCE: Dict[CompletionItemKind, int] = {
    CompletionItemKind.MODULE: 3,
    CompletionItemKind.FOLDER: 2,
    CompletionItemKind.FILE: 1,
}

METHOD_SEPARATOR = ":"
FIELD_SEPARATOR = "."

SEPARATOR_MEMBERS: Dict[str, frozenset] = {
    METHOD_SEPARATOR: frozenset({MemberType.METHOD}),
    FIELD_SEPARATOR: frozenset({MemberType.FUNCTION, MemberType.VALUE}),
}

MEMBER_KINDS: Dict[MemberType, CompletionItemKind] = {
    MemberType.METHOD: CompletionItemKind.METHOD,
    MemberType.FUNCTION: CompletionItemKind.FUNCTION,
    MemberType.VALUE: CompletionItemKind.FIELD,
}

REQUIRE_ALIAS = re.compile(
    r"^\s*local\s+(?P<alias>[A-Za-z_]\w*)\s*=\s*require\s*\(\s*"
    r"(?P<target>[A-Za-z_]\w*(?:\s*\.\s*[A-Za-z_]\w*)*)\s*\)"
)


def _offer(candidates: Dict[str, CompletionItemKind], name: str, kind: CompletionItemKind) -> None:
    current = candidates.get(name)
    if current is None or KIND_PRECEDENCE[kind] > KIND_PRECEDENCE[current]:
        candidates[name] = kind


def _match_mount(mount: Mount, tokens: Sequence[str]) -> Optional[int]:
    """Compare a mount's components with the typed tokens.

    Returns:
        None when the mount owns the path, otherwise the index of the first
        mismatching component
    """
    for index, component in enumerate(mount.components):
        if index >= len(tokens) or component != tokens[index]:
            return index
    return None


def strip_root_alias(tokens: Sequence[str], config: AssistConfig) -> List[str]:
    """Drop a leading ``game`` style token that names the manifest root."""
    tokens = list(tokens)
    if tokens and tokens[0] in config.root_aliases:
        return tokens[1:]
    return tokens


def complete_path(
    index: MountIndex, tokens: Sequence[str], config: Optional[AssistConfig] = None
) -> List[CompletionItem]:
    """Complete the next segment of a require path.

    Args:
        index: Current mount index
        tokens: Fully typed path segments (the partial segment under the
            cursor is not included)
        config: Assist configuration

    Returns:
        One item per candidate name, sorted by name
    """
    config = config or AssistConfig()
    tokens = list(tokens)
    candidates: Dict[str, CompletionItemKind] = {}

    for mount in index.mounts():
        mismatch = _match_mount(mount, tokens)
        if mismatch is not None:
            if mismatch == len(tokens):
                # The typed path stops right above this mount
                _offer(candidates, mount.components[mismatch], CompletionItemKind.FOLDER)
            continue

        residual = "/".join(tokens[len(mount.components) :])
        prefix = residual + "/" if residual else ""

        for path in mount.files:
            if not path.startswith(prefix):
                continue
            head, sep, rest = path[len(prefix) :].partition("/")
            if not head:
                continue

            if sep:
                if config.is_entry_file(rest):
                    _offer(candidates, head, CompletionItemKind.MODULE)
                else:
                    _offer(candidates, head, CompletionItemKind.FOLDER)
            elif config.is_entry_file(head):
                # Represents the residual itself, not a child of it
                continue
            elif config.is_module_script(head):
                _offer(candidates, config.strip_extension(head), CompletionItemKind.MODULE)
            else:
                _offer(candidates, config.strip_extension(head), CompletionItemKind.FILE)

    return [CompletionItem(label=name, kind=kind) for name, kind in sorted(candidates.items())]


def resolve_module_file(
    index: MountIndex, tokens: Sequence[str], config: Optional[AssistConfig] = None
) -> Optional[str]:
    """Find the source file a literal require path points at.

    The deepest owning mount is tried first. Inside it the residual may name
    ``<residual>.lua`` or a folder module ``<residual>/init.lua``.

    Returns:
        Workspace-relative POSIX path, or None
    """
    config = config or AssistConfig()
    tokens = list(tokens)
    owners = [m for m in index.mounts() if _match_mount(m, tokens) is None]
    owners.sort(key=lambda m: len(m.components), reverse=True)

    entry = "init" + config.source_extension
    for mount in owners:
        residual = "/".join(tokens[len(mount.components) :])
        if residual:
            candidates = [residual + config.source_extension, f"{residual}/{entry}"]
        else:
            candidates = [entry]
        for candidate in candidates:
            if candidate in mount.files:
                return mount.workspace_path(candidate)
    return None


def complete_members(dump: ModuleDump, separator: str) -> List[CompletionItem]:
    """Members of a module dump reachable with the given separator.

    ``:`` reaches methods; ``.`` reaches functions and values.
    """
    allowed = SEPARATOR_MEMBERS.get(separator)
    if allowed is None:
        return []
    return [
        CompletionItem(label=name, kind=MEMBER_KINDS[kind], detail=kind.value)
        for name, kind in sorted(dump.items())
        if kind in allowed
    ]


def find_require_alias(lines: Sequence[str], alias: str, before_line: int) -> Optional[List[str]]:
    """Find the require target bound to a local alias above a line.

    The last ``local <alias> = require(A.B.C)`` above ``before_line`` wins.

    Returns:
        The dotted target split into tokens, or None
    """
    target: Optional[List[str]] = None
    for line in lines[:before_line]:
        match = REQUIRE_ALIAS.match(line)
        if match and match.group("alias") == alias:
            target = [token.strip() for token in match.group("target").split(".")]
    return target
