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

"""Wire types for the companion protocol.

Messages are single-line JSON objects. Requests carry ``id``, ``method`` and
``params``; responses carry ``id`` and exactly one of ``result`` or ``error``.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

GENERATE_MODULE_DUMP = "generate_module_dump"


class MemberType(str, Enum):
    """Kind of member a module exports."""

    FUNCTION = "Function"
    METHOD = "Method"
    VALUE = "Value"


ModuleDump = Dict[str, MemberType]


class CompanionError(RuntimeError):
    """Base class for companion failures."""


class CompanionRequestError(CompanionError):
    """The companion answered a request with an error object."""

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        self.message = message
        super().__init__(f"Companion error {code}" + (f": {message}" if message else ""))


class CompanionProcessExitedError(CompanionError):
    """The companion exited while the request was outstanding."""


class CompanionAlreadyRunningError(CompanionError):
    """A second companion was started while one is still live."""


class RequestMessage(BaseModel):
    id: int = Field(ge=0)
    method: str
    params: List[Any] = Field(default_factory=list)

    def encode(self) -> bytes:
        """Serialise as one newline-terminated line."""
        return (self.model_dump_json() + "\n").encode("utf-8")


class ResponseError(BaseModel):
    code: int
    message: Optional[str] = None


class ResponseMessage(BaseModel):
    id: int
    result: Any = None
    error: Optional[ResponseError] = None
    has_result: bool = Field(default=False, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _one_outcome(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("response must be an object")
        has_result = "result" in data
        has_error = data.get("error") is not None
        if has_result == has_error:
            raise ValueError("response needs exactly one of result or error")
        return {**data, "has_result": has_result}


def decode_response(line: bytes) -> Optional[ResponseMessage]:
    """Parse one response line, or None if it is not a valid response."""
    try:
        return ResponseMessage.model_validate(json.loads(line.decode("utf-8")))
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError):
        return None


def parse_module_dump(result: Any) -> Optional[ModuleDump]:
    """Convert a ``generate_module_dump`` result into a ModuleDump.

    The companion answers ``null`` when the source does not return a table.
    Members with unknown kinds are dropped.
    """
    if not isinstance(result, dict):
        return None

    dump: ModuleDump = {}
    for name, kind in result.items():
        try:
            dump[str(name)] = MemberType(kind)
        except ValueError:
            continue
    return dump
