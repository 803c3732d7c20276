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

"""Client for the companion helper process."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from rojo_assist.companion.protocol import (
    GENERATE_MODULE_DUMP,
    CompanionProcessExitedError,
    CompanionRequestError,
    ModuleDump,
    RequestMessage,
    decode_response,
    parse_module_dump,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


@runtime_checkable
class CompanionHandle(Protocol):
    """What the rest of the package needs from a companion."""

    @property
    def is_running(self) -> bool: ...

    async def request(self, method: str, params: List[Any]) -> Any: ...

    async def generate_module_dump(self, code: str) -> Optional[ModuleDump]: ...

    async def stop(self) -> None: ...


def _split_line(buffer: bytes) -> Tuple[Optional[bytes], bytes]:
    """Split one complete line off the buffer.

    Returns:
        Tuple of (line or None, remaining buffer)
    """
    newline = buffer.find(b"\n")
    if newline == -1:
        return None, buffer
    return buffer[:newline], buffer[newline + 1 :]


class CompanionClient:
    """Pipelined request/response client over the companion's stdio.

    Requests are matched to responses by id only, so any number may be in
    flight and they may complete in any order.
    """

    def __init__(self, executable: Path, args: Optional[List[str]] = None):
        """Initialize the client.

        Args:
            executable: Verified companion binary
            args: Extra command line arguments
        """
        self.executable = Path(executable)
        self.args = list(args or [])
        self._process: Optional[asyncio.subprocess.Process] = None
        self._request_id = 0
        self._pending_requests: Dict[int, asyncio.Future] = {}
        self._buffer = b""
        self._reader_task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def is_running(self) -> bool:
        """Check if the companion process is running."""
        return self._process is not None and self._process.returncode is None

    @property
    def pending_count(self) -> int:
        return len(self._pending_requests)

    async def start(self) -> bool:
        """Spawn the companion process.

        Returns:
            True if started successfully
        """
        if self.is_running:
            logger.warning("Companion already running")
            return True

        cmd = [str(self.executable), *self.args]
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Failed to start companion {self.executable}: {e}")
            return False

        self._stopping = False
        self._reader_task = asyncio.create_task(self._read_messages())
        logger.info(f"Started companion: {' '.join(cmd)}")
        return True

    async def stop(self) -> None:
        """Terminate the companion.

        Requests still outstanding are abandoned: their futures are dropped
        without being resolved.
        """
        self._stopping = True

        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        if self._process and self._process.returncode is None:
            self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=5)
            except asyncio.TimeoutError:
                self._process.kill()
                await self._process.wait()

        if self._pending_requests:
            logger.debug(f"Abandoning {len(self._pending_requests)} companion requests")
        self._pending_requests.clear()
        self._buffer = b""
        self._process = None
        logger.info("Companion stopped")

    def _get_next_id(self) -> int:
        """Get next request ID, starting from 0."""
        request_id = self._request_id
        self._request_id += 1
        return request_id

    async def request(self, method: str, params: List[Any]) -> Any:
        """Send a request and wait for its response.

        Args:
            method: Companion method name
            params: Positional parameters

        Returns:
            The response result

        Raises:
            CompanionRequestError: The companion answered with an error
            CompanionProcessExitedError: The process is gone
        """
        if not self.is_running:
            raise CompanionProcessExitedError("Companion not running")

        message = RequestMessage(id=self._get_next_id(), method=method, params=params)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending_requests[message.id] = future

        await self._write_message(message)
        return await future

    async def generate_module_dump(self, code: str) -> Optional[ModuleDump]:
        """Ask the companion which members a module's source returns."""
        result = await self.request(GENERATE_MODULE_DUMP, [code])
        return parse_module_dump(result)

    async def _write_message(self, message: RequestMessage) -> None:
        stdin = self._process.stdin if self._process else None
        if stdin is None:
            self._reject(message.id, CompanionProcessExitedError("Companion stdin closed"))
            return

        try:
            stdin.write(message.encode())
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.error(f"Failed to write to companion: {e}")
            self._reject(message.id, CompanionProcessExitedError(str(e)))

    async def _read_messages(self) -> None:
        """Read response lines until the process closes stdout."""
        stdout = self._process.stdout if self._process else None
        if stdout is None:
            return

        while True:
            try:
                chunk = await stdout.read(READ_CHUNK_SIZE)
            except (ConnectionResetError, OSError) as e:
                logger.error(f"Error reading from companion: {e}")
                break
            if not chunk:
                break
            self._feed(chunk)

        if not self._stopping:
            logger.warning("Companion exited unexpectedly")
            self._fail_pending(CompanionProcessExitedError("Companion exited"))

    def _feed(self, chunk: bytes) -> None:
        """Buffer raw output and dispatch every complete line."""
        self._buffer += chunk
        while True:
            line, self._buffer = _split_line(self._buffer)
            if line is None:
                break
            if line.strip():
                self._handle_line(line)

    def _handle_line(self, line: bytes) -> None:
        response = decode_response(line)
        if response is None:
            logger.warning(f"Ignoring malformed companion message: {line[:100]!r}")
            return

        future = self._pending_requests.pop(response.id, None)
        if future is None:
            logger.debug(f"Companion response for unknown id {response.id}")
            return
        if future.done():
            return

        if response.has_result:
            future.set_result(response.result)
        else:
            future.set_exception(CompanionRequestError(response.error.code, response.error.message))

    def _reject(self, request_id: int, error: Exception) -> None:
        future = self._pending_requests.pop(request_id, None)
        if future is not None and not future.done():
            future.set_exception(error)

    def _fail_pending(self, error: Exception) -> None:
        for request_id in list(self._pending_requests):
            self._reject(request_id, error)


class NullCompanionClient:
    """Stand-in used when the companion is untrusted or unavailable.

    Never spawns a process; every request resolves to None.
    """

    def __init__(self, reason: str = "companion unavailable"):
        self.reason = reason

    @property
    def is_running(self) -> bool:
        return False

    async def request(self, method: str, params: List[Any]) -> Any:
        return None

    async def generate_module_dump(self, code: str) -> Optional[ModuleDump]:
        return None

    async def stop(self) -> None:
        return None
