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


"""Shared fixtures for rojo-assist tests."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from rojo_assist.companion.protocol import ModuleDump


class Workspace:
    """A throwaway Rojo workspace on disk."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, relative: str, content: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def manifest(self, tree: Dict[str, Any], name: str = "default.project.json") -> Path:
        return self.write(name, json.dumps({"name": "place", "tree": tree}))


class FakeCompanion:
    """Companion stand-in answering from a source -> dump table."""

    def __init__(self, dumps: Optional[Dict[str, ModuleDump]] = None):
        self.dumps = dumps or {}
        self.sources: List[str] = []

    @property
    def is_running(self) -> bool:
        return True

    async def request(self, method: str, params: List[Any]) -> Any:
        return None

    async def generate_module_dump(self, code: str) -> Optional[ModuleDump]:
        self.sources.append(code)
        return self.dumps.get(code)

    async def stop(self) -> None:
        return None


@pytest.fixture
def workspace(tmp_path) -> Workspace:
    """Create an empty workspace."""
    return Workspace(tmp_path)


@pytest.fixture
def place_tree() -> Dict[str, Any]:
    """A DataModel tree with two services and a nested mount."""
    return {
        "$className": "DataModel",
        "ReplicatedStorage": {
            "$className": "ReplicatedStorage",
            "Shared": {
                "$path": "src/shared",
                "Vendor": {"$path": "vendor"},
            },
        },
        "ServerScriptService": {
            "$className": "ServerScriptService",
            "Server": {"$path": "src/server"},
        },
    }


@pytest.fixture
def make_companion():
    """Factory for FakeCompanion instances."""
    return FakeCompanion


# Minimal companion: answers every generate_module_dump with one Value member
# named after the first word of the source, or null for empty sources.
ECHO_COMPANION = """
import json, sys
for line in sys.stdin:
    request = json.loads(line)
    words = request["params"][0].split()
    result = {words[0]: "Value"} if words else None
    sys.stdout.write(json.dumps({"id": request["id"], "result": result}) + "\\n")
    sys.stdout.flush()
"""

# Reads two requests, then answers them newest first and exits.
REVERSING_COMPANION = """
import json, sys
requests = [json.loads(sys.stdin.readline()) for _ in range(2)]
for request in reversed(requests):
    code = request["params"][0]
    sys.stdout.write(json.dumps({"id": request["id"], "result": {code: "Function"}}) + "\\n")
sys.stdout.flush()
"""


@pytest.fixture
def echo_companion_args():
    """Interpreter arguments running the echo companion."""
    return ["-c", ECHO_COMPANION]


@pytest.fixture
def reversing_companion_args():
    """Interpreter arguments running the reversing companion."""
    return ["-c", REVERSING_COMPANION]
