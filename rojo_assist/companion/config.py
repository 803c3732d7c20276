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

"""Companion helper configuration and per-platform binaries.

The companion is a compiled helper that parses Lua and reports the members a
module returns. One build ships per supported platform, each next to a
detached signature (``<binary>.sig``) and a shared public key.
"""

import platform
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

# (system, machine) -> binary file name
COMPANION_BINARIES: Dict[Tuple[str, str], str] = {
    ("linux", "x86_64"): "companion-linux-x86_64",
    ("linux", "aarch64"): "companion-linux-aarch64",
    ("darwin", "x86_64"): "companion-macos-x86_64",
    ("darwin", "arm64"): "companion-macos-arm64",
    ("windows", "amd64"): "companion-windows-x86_64.exe",
}

SIGNATURE_SUFFIX = ".sig"
DEFAULT_BIN_DIR = Path(__file__).resolve().parent / "bin"


class CompanionConfig(BaseModel):
    """Configuration for launching the companion helper."""

    enabled: bool = Field(default=True, description="Start the companion at all")
    bin_dir: Path = Field(
        default=DEFAULT_BIN_DIR, description="Directory holding binaries, signatures and key"
    )
    public_key_name: str = Field(
        default="companion.pub", description="PEM Ed25519 public key file inside bin_dir"
    )
    executable: Optional[Path] = Field(
        default=None, description="Explicit binary path, overriding platform detection"
    )
    args: List[str] = Field(default_factory=list, description="Extra command line arguments")

    @property
    def public_key_path(self) -> Path:
        return self.bin_dir / self.public_key_name

    def resolve_executable(
        self, system: Optional[str] = None, machine: Optional[str] = None
    ) -> Optional[Path]:
        """Return the binary for this platform, or None if none is built for it."""
        if self.executable is not None:
            return self.executable

        key = (
            (system or platform.system()).lower(),
            (machine or platform.machine()).lower(),
        )
        name = COMPANION_BINARIES.get(key)
        if name is None:
            return None
        return self.bin_dir / name


def signature_path_for(executable: Path) -> Path:
    """Detached signature location for a binary."""
    return executable.with_name(executable.name + SIGNATURE_SUFFIX)
