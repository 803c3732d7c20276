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

"""Ownership of the companion process.

``CompanionHost`` is the single owner of the live companion. It decides
whether the real client or the stand-in is used and refuses to start a second
companion while one is live.

Usage:
    async with CompanionHost(config) as host:
        companion = await host.start()
        dump = await companion.generate_module_dump(source)
"""

import logging
from typing import Callable, Optional, Union

from rich.console import Console

from rojo_assist.companion.client import CompanionClient, CompanionHandle, NullCompanionClient
from rojo_assist.companion.config import CompanionConfig
from rojo_assist.companion.protocol import CompanionAlreadyRunningError
from rojo_assist.companion.trust import TrustVerifier

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def console_notifier(console: Optional[Console] = None) -> Notifier:
    """Build a notifier that prints warnings to stderr."""
    console = console or Console(stderr=True)

    def notify(message: str) -> None:
        console.print(f"[bold yellow]rojo-assist:[/bold yellow] {message}")

    return notify


class CompanionHost:
    """Creates, owns and disposes the companion."""

    def __init__(
        self,
        config: Optional[CompanionConfig] = None,
        verifier: Optional[TrustVerifier] = None,
        notify: Optional[Notifier] = None,
    ):
        """Initialize the host.

        Args:
            config: Companion configuration
            verifier: Trust verifier (built from the config's public key if None)
            notify: Callback for user-facing warnings
        """
        self.config = config or CompanionConfig()
        self.verifier = verifier or TrustVerifier(self.config.public_key_path)
        self._notify = notify or console_notifier()
        self._client: Optional[Union[CompanionClient, NullCompanionClient]] = None
        self._warned = False

    async def __aenter__(self) -> "CompanionHost":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @property
    def client(self) -> Optional[CompanionHandle]:
        return self._client

    @property
    def active(self) -> bool:
        return self._client is not None

    async def start(self) -> CompanionHandle:
        """Create the companion for this host.

        Returns:
            A running CompanionClient, or a NullCompanionClient when the
            binary is untrusted, missing or not built for this platform

        Raises:
            CompanionAlreadyRunningError: A companion from this host is still live
        """
        if self._client is not None:
            raise CompanionAlreadyRunningError(
                "A companion is already active; stop it before starting another"
            )

        self._client = await self._create()
        return self._client

    async def _create(self) -> Union[CompanionClient, NullCompanionClient]:
        if not self.config.enabled:
            logger.info("Companion disabled by configuration")
            return NullCompanionClient("disabled")

        executable = self.config.resolve_executable()
        if executable is None:
            logger.info("No companion build for this platform; member completion disabled")
            return NullCompanionClient("unsupported platform")

        if not self.verifier.verify(executable).trusted:
            self._warn_once(
                f"The companion binary {executable.name} could not be verified and will not "
                "be run. Completions for module members are unavailable."
            )
            return NullCompanionClient("untrusted")

        client = CompanionClient(executable, self.config.args)
        if not await client.start():
            return NullCompanionClient("failed to start")
        return client

    def _warn_once(self, message: str) -> None:
        logger.warning(message)
        if self._warned:
            return
        self._warned = True
        self._notify(message)

    async def stop(self) -> None:
        """Dispose the companion, allowing a new one to be started."""
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.stop()
