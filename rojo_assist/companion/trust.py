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

"""Signature checks for the companion binary.

A binary is trusted only when its SHA-256 digest carries a valid Ed25519
signature from the bundled public key. Nothing here raises: every failure
becomes an untrusted decision.
"""

import base64
import binascii
import hashlib
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from rojo_assist.companion.config import signature_path_for

logger = logging.getLogger(__name__)

ED25519_SIGNATURE_LENGTH = 64


class TrustDecision(str, Enum):
    """Outcome of verifying a companion binary."""

    TRUSTED = "trusted"
    UNTRUSTED = "untrusted"

    @property
    def trusted(self) -> bool:
        return self is TrustDecision.TRUSTED


def digest_file(path: Path) -> bytes:
    """SHA-256 digest of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.digest()


def _decode_signature(raw: bytes) -> Optional[bytes]:
    if len(raw) == ED25519_SIGNATURE_LENGTH:
        return raw
    try:
        decoded = base64.b64decode(raw.strip(), validate=True)
    except (binascii.Error, ValueError):
        return None
    return decoded if len(decoded) == ED25519_SIGNATURE_LENGTH else None


class TrustVerifier:
    """Verifies companion binaries against a public key.

    Decisions are memoised per resolved (binary, signature) pair for the
    lifetime of the verifier, so a pair is checked at most once per host
    session.
    """

    def __init__(self, public_key_path: Path):
        self.public_key_path = Path(public_key_path)
        self._decisions: Dict[Tuple[Path, Path], TrustDecision] = {}

    def verify(self, executable: Path, signature: Optional[Path] = None) -> TrustDecision:
        """Verify an executable against its detached signature.

        Args:
            executable: Binary to check
            signature: Signature file (defaults to ``<executable>.sig``)

        Returns:
            TRUSTED only if every artifact exists and the signature checks out
        """
        executable = Path(executable)
        signature_path = Path(signature or signature_path_for(executable))
        key = (executable.resolve(), signature_path.resolve())
        if key in self._decisions:
            return self._decisions[key]

        decision = self._check(executable, signature_path)
        self._decisions[key] = decision
        return decision

    def _check(self, executable: Path, signature_path: Path) -> TrustDecision:
        for artifact in (executable, signature_path, self.public_key_path):
            if not artifact.is_file():
                logger.warning(f"Companion trust check failed: missing {artifact}")
                return TrustDecision.UNTRUSTED

        try:
            public_key = serialization.load_pem_public_key(self.public_key_path.read_bytes())
            signature = _decode_signature(signature_path.read_bytes())
            digest = digest_file(executable)
        except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as e:
            logger.warning(f"Companion trust check failed: {e}")
            return TrustDecision.UNTRUSTED

        if not isinstance(public_key, Ed25519PublicKey):
            logger.warning(f"Companion public key {self.public_key_path} is not Ed25519")
            return TrustDecision.UNTRUSTED
        if signature is None:
            logger.warning(f"Companion signature {signature_path} is malformed")
            return TrustDecision.UNTRUSTED

        try:
            public_key.verify(signature, digest)
        except InvalidSignature:
            logger.warning(f"Companion signature does not match {executable.name}")
            return TrustDecision.UNTRUSTED

        logger.debug(f"Companion binary {executable.name} verified")
        return TrustDecision.TRUSTED
