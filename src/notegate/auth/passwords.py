# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher as _Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """Adaptive password hashing.

    The encoded digest carries algorithm, work factor and salt, so no salt is
    stored separately. Raise the work factor over time; ``needs_rehash`` lets
    login upgrade old digests.
    """

    def __init__(self, *, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> None:
        self._ph = _Argon2Hasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)

    def hash(self, plain: str) -> str:
        if not plain:
            raise ValueError("Empty password")
        return self._ph.hash(plain)

    def verify(self, hash_value: str, plain: str) -> bool:
        if not hash_value or not plain:
            return False
        try:
            return self._ph.verify(hash_value, plain)
        except (VerificationError, InvalidHashError):
            # Mismatch and malformed digests look the same to callers.
            return False

    def needs_rehash(self, hash_value: str) -> bool:
        try:
            return self._ph.check_needs_rehash(hash_value)
        except InvalidHashError:
            return True
