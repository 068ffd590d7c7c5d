# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from itsdangerous import BadData, URLSafeTimedSerializer

SESSION_SALT = "notegate.session.v1"
DEFAULT_MAX_AGE_SECONDS = 28800  # 8 hours
NONCE_LEN = 12


@dataclass(frozen=True)
class SessionData:
    """What the client holds: which id to re-check, plus volatile preferences."""

    id: Optional[str] = None
    theme: Optional[str] = None

    def to_payload(self) -> dict:
        out = {}
        if self.id:
            out["id"] = self.id
        if self.theme:
            out["theme"] = self.theme
        return out


def _derive_key(secret: str) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=SESSION_SALT.encode("utf-8"),
        info=b"notegate session payload",
    )
    return hkdf.derive(secret.encode("utf-8"))


class _EncryptedJSON:
    """JSON serializer for itsdangerous that AES-GCM encrypts the payload."""

    def __init__(self, key: bytes) -> None:
        self._aead = AESGCM(key)

    def dumps(self, obj) -> bytes:
        nonce = os.urandom(NONCE_LEN)
        plain = json.dumps(obj, separators=(",", ":")).encode("utf-8")
        return nonce + self._aead.encrypt(nonce, plain, None)

    def loads(self, blob: bytes):
        if len(blob) <= NONCE_LEN:
            raise ValueError("Sealed payload too short")
        try:
            plain = self._aead.decrypt(blob[:NONCE_LEN], blob[NONCE_LEN:], None)
        except InvalidTag as e:
            raise ValueError("Sealed payload could not be opened") from e
        return json.loads(plain.decode("utf-8"))


class SessionSealer:
    def __init__(self, secret: str, *, max_age: int = DEFAULT_MAX_AGE_SECONDS) -> None:
        if not secret:
            raise RuntimeError("Session sealing requires a server secret")
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret,
            salt=SESSION_SALT,
            serializer=_EncryptedJSON(_derive_key(secret)),
        )

    def seal(self, data: SessionData) -> str:
        # The encrypting serializer yields bytes, so itsdangerous does too.
        return self._serializer.dumps(data.to_payload()).decode("ascii")

    def unseal(self, token: Optional[str]) -> Optional[SessionData]:
        """Open a sealed token.

        Missing, tampered, expired, foreign-secret and corrupt tokens all give
        ``None``; callers cannot tell them apart.
        """
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except BadData:
            return None
        if not isinstance(data, dict):
            return None
        uid = data.get("id")
        theme = data.get("theme")
        return SessionData(
            id=uid if isinstance(uid, str) and uid else None,
            theme=theme if isinstance(theme, str) and theme else None,
        )
