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


"""Tests for the companion request/response client."""

import asyncio
import json
import sys

import pytest

from rojo_assist.companion.client import (
    CompanionClient,
    CompanionHandle,
    NullCompanionClient,
    _split_line,
)
from rojo_assist.companion.protocol import (
    CompanionProcessExitedError,
    CompanionRequestError,
    MemberType,
)


class FakeStdin:
    def __init__(self, broken: bool = False):
        self.requests = []
        self.broken = broken

    def write(self, data: bytes) -> None:
        if self.broken:
            raise BrokenPipeError("pipe closed")
        assert data.endswith(b"\n")
        self.requests.append(json.loads(data))

    async def drain(self) -> None:
        return None


class FakeProcess:
    def __init__(self, stdin=None, stdout=None):
        self.stdin = stdin or FakeStdin()
        self.stdout = stdout
        self.returncode = None

    def terminate(self) -> None:
        self.returncode = -15

    def kill(self) -> None:
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


def _attached(process=None) -> CompanionClient:
    client = CompanionClient(sys.executable)
    client._process = process or FakeProcess()
    return client


async def _until_pending(client: CompanionClient, count: int) -> None:
    while client.pending_count < count:
        await asyncio.sleep(0)


def test_split_line():
    assert _split_line(b"abc\ndef") == (b"abc", b"def")
    assert _split_line(b"abc") == (None, b"abc")


class TestRequestMatching:
    """Tests for matching responses to requests by id."""

    @pytest.mark.asyncio
    async def test_ids_start_at_zero_and_increase(self):
        client = _attached()
        first = asyncio.create_task(client.request("ping", []))
        second = asyncio.create_task(client.request("ping", [1]))
        await _until_pending(client, 2)

        requests = client._process.stdin.requests
        assert [r["id"] for r in requests] == [0, 1]
        assert requests[1] == {"id": 1, "method": "ping", "params": [1]}

        client._feed(b'{"id": 0, "result": "a"}\n{"id": 1, "result": "b"}\n')
        assert await first == "a"
        assert await second == "b"

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self):
        client = _attached()
        first = asyncio.create_task(client.request("m", ["first"]))
        second = asyncio.create_task(client.request("m", ["second"]))
        await _until_pending(client, 2)

        # Second answer arrives first, split across reads
        client._feed(b'{"id": 1, "res')
        client._feed(b'ult": "second"}\n{"id": 0,')
        assert await second == "second"
        assert not first.done()
        client._feed(b' "result": "first"}\n')

        assert await first == "first"
        assert client.pending_count == 0

    @pytest.mark.asyncio
    async def test_error_rejects_only_its_request(self):
        client = _attached()
        failing = asyncio.create_task(client.request("m", []))
        passing = asyncio.create_task(client.request("m", []))
        await _until_pending(client, 2)

        client._feed(b'{"id": 0, "error": {"code": -32603, "message": "boom"}}\n')
        client._feed(b'{"id": 1, "result": null}\n')

        with pytest.raises(CompanionRequestError) as exc_info:
            await failing
        assert exc_info.value.code == -32603
        assert await passing is None

    @pytest.mark.asyncio
    async def test_malformed_and_unknown_lines_are_ignored(self):
        client = _attached()
        task = asyncio.create_task(client.request("m", []))
        await _until_pending(client, 1)

        client._feed(b"not json\n")
        client._feed(b'{"id": 0}\n')
        client._feed(b'{"id": 7, "result": 1}\n')
        assert not task.done()

        client._feed(b'{"id": 0, "result": 2}\n')
        assert await task == 2

    @pytest.mark.asyncio
    async def test_module_dump_is_parsed(self):
        client = _attached()
        task = asyncio.create_task(client.generate_module_dump("return {}"))
        await _until_pending(client, 1)

        assert client._process.stdin.requests[0]["method"] == "generate_module_dump"
        assert client._process.stdin.requests[0]["params"] == ["return {}"]
        client._feed(b'{"id": 0, "result": {"new": "Function", "x": "Bogus"}}\n')
        assert await task == {"new": MemberType.FUNCTION}


class TestProcessLifecycle:
    """Tests for behaviour around the companion process going away."""

    @pytest.mark.asyncio
    async def test_request_without_process_fails(self):
        client = CompanionClient(sys.executable)
        with pytest.raises(CompanionProcessExitedError):
            await client.request("m", [])

    @pytest.mark.asyncio
    async def test_broken_pipe_rejects_request(self):
        client = _attached(FakeProcess(stdin=FakeStdin(broken=True)))
        with pytest.raises(CompanionProcessExitedError):
            await client.request("m", [])
        assert client.pending_count == 0

    @pytest.mark.asyncio
    async def test_exit_rejects_every_pending_request(self):
        stdout = asyncio.StreamReader()
        client = _attached(FakeProcess(stdout=stdout))
        client._reader_task = asyncio.create_task(client._read_messages())

        tasks = [asyncio.create_task(client.request("m", [i])) for i in range(3)]
        await _until_pending(client, 3)
        stdout.feed_data(b'{"id": 1, "result": "ok"}\n')
        stdout.feed_eof()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert results[1] == "ok"
        assert isinstance(results[0], CompanionProcessExitedError)
        assert isinstance(results[2], CompanionProcessExitedError)

    @pytest.mark.asyncio
    async def test_stop_abandons_pending_requests(self):
        client = _attached()
        task = asyncio.create_task(client.request("m", []))
        await _until_pending(client, 1)

        await client.stop()

        assert client.pending_count == 0
        assert not client.is_running
        assert not task.done()
        task.cancel()

    @pytest.mark.asyncio
    async def test_start_failure_returns_false(self, tmp_path):
        client = CompanionClient(tmp_path / "missing-binary")
        assert await client.start() is False
        assert not client.is_running


class TestRealProcess:
    """Tests against a real child process speaking the line protocol."""

    @pytest.mark.asyncio
    async def test_reversed_answers_reach_their_callers(self, reversing_companion_args):
        client = CompanionClient(sys.executable, reversing_companion_args)
        assert await client.start()
        try:
            first, second = await asyncio.wait_for(
                asyncio.gather(
                    client.generate_module_dump("alpha"), client.generate_module_dump("beta")
                ),
                timeout=10,
            )
            assert first == {"alpha": MemberType.FUNCTION}
            assert second == {"beta": MemberType.FUNCTION}
        finally:
            await client.stop()


class TestNullCompanionClient:
    @pytest.mark.asyncio
    async def test_everything_resolves_to_none(self):
        client = NullCompanionClient("untrusted")
        assert not client.is_running
        assert await client.generate_module_dump("return {}") is None
        assert await client.request("m", []) is None
        await client.stop()

    def test_satisfies_handle_protocol(self):
        assert isinstance(NullCompanionClient(), CompanionHandle)
        assert isinstance(CompanionClient(sys.executable), CompanionHandle)
