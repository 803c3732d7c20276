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

"""Companion helper integration.

The companion is an external process that parses Lua sources and reports the
members each module returns. It is only run after its signature is verified.
"""

from rojo_assist.companion.client import CompanionClient, CompanionHandle, NullCompanionClient
from rojo_assist.companion.config import COMPANION_BINARIES, CompanionConfig, signature_path_for
from rojo_assist.companion.host import CompanionHost, console_notifier
from rojo_assist.companion.protocol import (
    CompanionAlreadyRunningError,
    CompanionError,
    CompanionProcessExitedError,
    CompanionRequestError,
    MemberType,
    ModuleDump,
)
from rojo_assist.companion.trust import TrustDecision, TrustVerifier

__all__ = [
    "CompanionClient",
    "CompanionHandle",
    "NullCompanionClient",
    "COMPANION_BINARIES",
    "CompanionConfig",
    "signature_path_for",
    "CompanionHost",
    "console_notifier",
    "CompanionAlreadyRunningError",
    "CompanionError",
    "CompanionProcessExitedError",
    "CompanionRequestError",
    "MemberType",
    "ModuleDump",
    "TrustDecision",
    "TrustVerifier",
]
