# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import List, Optional

from notegate.auth.passwords import PasswordHasher
from notegate.auth.session import SessionData, SessionSealer
from notegate.auth.users import CredentialStore, User
from notegate.config import Settings
from notegate.errors import (
    AdministrationDisabled,
    AlreadyExists,
    InvalidCredentials,
    RegistrationClosed,
    StoreUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 64
# Bounds the hashing cost an anonymous caller can trigger.
PASSWORD_MAX_LENGTH = 1024


def validate_username(username: object, *, min_length: int = 3) -> str:
    if not isinstance(username, str):
        raise ValidationError(f"Usernames must be at least {min_length} characters long")
    u = username.strip()
    if len(u) < min_length:
        raise ValidationError(f"Usernames must be at least {min_length} characters long")
    if len(u) > USERNAME_MAX_LENGTH:
        raise ValidationError(f"Usernames must be at most {USERNAME_MAX_LENGTH} characters long")
    if any(ch.isspace() or not ch.isprintable() for ch in u):
        raise ValidationError("Usernames cannot contain whitespace or control characters")
    return u


def validate_password(password: object, *, min_length: int = 16) -> str:
    if not isinstance(password, str) or len(password) < min_length:
        raise ValidationError(f"Passwords must be at least {min_length} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"Passwords must be at most {PASSWORD_MAX_LENGTH} characters long")
    return password


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        sealer: SessionSealer,
        settings: Settings,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.sealer = sealer
        self.settings = settings
        self._dummy_hash: Optional[str] = None

    def _check_username(self, username: object) -> str:
        return validate_username(username, min_length=self.settings.username_min_length)

    def _check_password(self, password: object) -> str:
        return validate_password(password, min_length=self.settings.password_min_length)

    # ------------------ Registration ------------------

    def register(self, username: str, password: str) -> User:
        # Closed registration answers the same way for every input.
        if not self.settings.registration_enabled:
            raise RegistrationClosed()
        return self._create(username, password)

    def _create(self, username: str, password: str) -> User:
        u = self._check_username(username)
        self._check_password(password)
        if self.store.find_by_username(u) is not None:
            raise AlreadyExists()
        pass_hash = self.hasher.hash(password)
        del password
        user = self.store.create_user(u, pass_hash)
        logger.info("User created: %s", user.username)
        return user

    # ------------------ Login / Logout ------------------

    def _verify_unknown(self, password: str) -> None:
        """Spend one verify on a throwaway digest so unknown usernames cost
        the same as wrong passwords."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("notegate-unknown-user")
        self.hasher.verify(self._dummy_hash, password)

    def login(self, username: str, password: str, *, theme: Optional[str] = None) -> str:
        if not isinstance(username, str) or not isinstance(password, str) or not password:
            raise InvalidCredentials()
        if len(password) > PASSWORD_MAX_LENGTH:
            raise InvalidCredentials()

        u = username.strip()
        user = self.store.find_by_username(u) if u else None
        pass_hash = self.store.get_password_hash(u) if user else None
        if user is None or not pass_hash:
            self._verify_unknown(password)
            raise InvalidCredentials()

        verified = self.hasher.verify(pass_hash, password)
        if verified and self.hasher.needs_rehash(pass_hash):
            # The upgrade is best effort; the old digest still verifies.
            try:
                self.store.change_password_hash(user.id, self.hasher.hash(password))
            except StoreUnavailable:
                logger.warning("Could not upgrade password hash for user_id=%s", user.id)
        del password
        if not verified:
            raise InvalidCredentials()

        return self.sealer.seal(SessionData(id=user.id, theme=theme))

    def logout(self, token: Optional[str]) -> Optional[str]:
        """Return a token with the identity cleared, or None when nothing
        worth keeping is left."""
        data = self.sealer.unseal(token)
        if data is None or not data.theme:
            return None
        return self.sealer.seal(SessionData(id=None, theme=data.theme))

    def with_theme(self, token: Optional[str], theme: Optional[str]) -> str:
        data = self.sealer.unseal(token) or SessionData()
        return self.sealer.seal(SessionData(id=data.id, theme=(theme or None)))

    # ------------------ Administration ------------------

    def _require_sudo(self) -> None:
        if not self.settings.sudo_mode:
            raise AdministrationDisabled()

    def create_user(self, username: str, password: str) -> User:
        self._require_sudo()
        return self._create(username, password)

    def list_users(self) -> List[User]:
        self._require_sudo()
        return self.store.list_users()

    def change_username(self, user_id: str, new_username: str) -> None:
        self._require_sudo()
        u = self._check_username(new_username)
        self.store.change_username(user_id, u)
        logger.info("Username changed for user %s", user_id)

    def change_password(self, user_id: str, new_password: str) -> None:
        self._require_sudo()
        self._check_password(new_password)
        pass_hash = self.hasher.hash(new_password)
        del new_password
        self.store.change_password_hash(user_id, pass_hash)
        logger.info("Password changed for user %s", user_id)

    def delete_user(self, user_id: str) -> None:
        self._require_sudo()
        self.store.delete_user(user_id)
        logger.info("User deleted: %s", user_id)
