# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Identity and outcome types.

Absence is its own type and is always falsy. Presence is decided by
``is_identity`` on the ``id`` field, never by whether some object exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")

NO_TOKEN = "no_token"
UNREADABLE = "unreadable"
NO_IDENTITY = "no_identity"
UNKNOWN_USER = "unknown_user"
STORE_ERROR = "store_error"

# Reasons that mean the client's cookie is poisoned and should be dropped.
_CLEAR_REASONS = frozenset({UNREADABLE, UNKNOWN_USER, STORE_ERROR})


@dataclass(frozen=True)
class Identity:
    """A user record re-read from the store for the current request."""

    id: str
    username: str

    def __bool__(self) -> bool:
        return bool(self.id)


@dataclass(frozen=True)
class Absent:
    reason: str = NO_TOKEN

    def __bool__(self) -> bool:
        return False

    @property
    def clear_session(self) -> bool:
        return self.reason in _CLEAR_REASONS


ABSENT = Absent()

Resolution = Union[Identity, Absent]


def is_identity(value: Any) -> bool:
    return isinstance(value, Identity) and isinstance(value.id, str) and bool(value.id)


# ------------------ Guarded outcomes ------------------


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Redirect:
    location: str
    clear_session: bool = False


@dataclass(frozen=True)
class Fail:
    kind: str
    message: Optional[str] = None


Outcome = Union[Ok, Redirect, Fail]
