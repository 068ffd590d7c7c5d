# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(env: Mapping[str, str], name: str, default: str = "false") -> bool:
    return str(env.get(name, default)).strip().lower() in _TRUTHY


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = str(env.get(name, "") or "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    secret_key: str
    secret_is_ephemeral: bool = False
    environment: str = "development"
    registration_enabled: bool = False
    db_path: str = ".data/users.sqlite"
    cookie_name: str = "auth_session"
    session_max_age: int = 28800  # 8 hours
    force_https: bool = False
    sudo_mode: bool = False
    hash_time_cost: int = 3
    hash_memory_cost: int = 65536
    hash_parallelism: int = 4
    username_min_length: int = 3
    password_min_length: int = 16

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        # Local development runs over plain http.
        return self.is_production and self.force_https


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the process environment.

    A missing secret is fatal in production. Elsewhere an ephemeral secret is
    generated, so sessions do not survive a restart.
    """
    env = os.environ if environ is None else environ
    environment = (env.get("NOTEGATE_ENV") or "development").strip().lower()

    secret = (env.get("NOTEGATE_SECRET_KEY") or env.get("SESSION_SECRET") or "").strip()
    ephemeral = False
    if not secret:
        if environment == "production":
            raise RuntimeError("Missing NOTEGATE_SECRET_KEY (or SESSION_SECRET) in production")
        logger.warning(
            "No NOTEGATE_SECRET_KEY set; using a random secret (sessions will not persist across restarts)"
        )
        secret = secrets.token_hex(32)
        ephemeral = True

    return Settings(
        secret_key=secret,
        secret_is_ephemeral=ephemeral,
        environment=environment,
        registration_enabled=_flag(env, "NOTEGATE_REGISTRATION_ENABLED"),
        db_path=(env.get("NOTEGATE_DB_PATH") or ".data/users.sqlite").strip(),
        cookie_name=(env.get("NOTEGATE_COOKIE_NAME") or "auth_session").strip(),
        session_max_age=_int(env, "NOTEGATE_SESSION_MAX_AGE", 28800),
        force_https=_flag(env, "NOTEGATE_FORCE_HTTPS"),
        sudo_mode=_flag(env, "NOTEGATE_SUDO_MODE"),
        hash_time_cost=_int(env, "NOTEGATE_HASH_TIME_COST", 3),
        hash_memory_cost=_int(env, "NOTEGATE_HASH_MEMORY_COST", 65536),
        hash_parallelism=_int(env, "NOTEGATE_HASH_PARALLELISM", 4),
        username_min_length=_int(env, "NOTEGATE_USERNAME_MIN_LENGTH", 3),
        password_min_length=_int(env, "NOTEGATE_PASSWORD_MIN_LENGTH", 16),
    )
