# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import re
from typing import Optional

from notegate.auth.identity import (
    ABSENT,
    NO_IDENTITY,
    STORE_ERROR,
    UNKNOWN_USER,
    UNREADABLE,
    Absent,
    Identity,
    Resolution,
)
from notegate.auth.session import SessionSealer
from notegate.auth.users import CredentialStore

logger = logging.getLogger(__name__)

_USER_ID_RE = re.compile(r"^[0-9a-f]{32}$")


class SessionResolver:
    """Turn a client token into a store-confirmed identity.

    The token only names an id. Username and existence always come from a
    fresh store read, so deleted users lose access on their next request.
    """

    def __init__(self, sealer: SessionSealer, store: CredentialStore) -> None:
        self.sealer = sealer
        self.store = store

    def resolve(self, token: Optional[str]) -> Resolution:
        if not token:
            return ABSENT

        data = self.sealer.unseal(token)
        if data is None:
            logger.debug("Rejected session token: unreadable")
            return Absent(UNREADABLE)

        uid = data.id
        if not uid:
            return Absent(NO_IDENTITY)
        if not _USER_ID_RE.match(uid):
            logger.info("Rejected session token: malformed user id")
            return Absent(UNKNOWN_USER)

        try:
            user = self.store.find_by_id(uid)
        except Exception:
            # Fail closed on any store problem.
            logger.exception("Credential store lookup failed during session resolution")
            return Absent(STORE_ERROR)

        if user is None or not user.id:
            logger.info("Rejected session token: user no longer exists")
            return Absent(UNKNOWN_USER)
        return Identity(id=user.id, username=user.username)
