# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from notegate.errors import AlreadyExists, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("username", String, unique=True, nullable=False),
    Column("pass_hash", String, nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)


def new_user_id() -> str:
    """128 random bits, hex encoded. Never sequential."""
    return secrets.token_hex(16)


def open_engine(path: str) -> Engine:
    """Open the shared SQLite handle for the credential store.

    ``:memory:`` keeps a single connection so every caller sees the same
    database.
    """
    if path == ":memory:":
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})


@dataclass(frozen=True)
class User:
    id: str
    username: str
    created_at: Optional[datetime] = None


def _row_to_user(row) -> User:
    return User(id=row.id, username=row.username, created_at=row.created_at)


class CredentialStore:
    """Durable user records. The password hash only leaves through
    ``get_password_hash``."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine, tables=[users_table])
        except SQLAlchemyError as e:
            logger.exception("Could not create users table")
            raise StoreUnavailable() from e

    # ------------------ Create ------------------

    def create_user(self, username: str, pass_hash: str) -> User:
        uid = new_user_id()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    users_table.insert().values(id=uid, username=username, pass_hash=pass_hash)
                )
        except IntegrityError as e:
            raise AlreadyExists() from e
        except SQLAlchemyError as e:
            logger.exception("Could not insert user")
            raise StoreUnavailable() from e
        created = self.find_by_id(uid)
        return created or User(id=uid, username=username)

    # ------------------ Read ------------------

    def _fetch_one(self, stmt):
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).first()
        except SQLAlchemyError as e:
            logger.exception("Credential store read failed")
            raise StoreUnavailable() from e

    def find_by_id(self, user_id: str) -> Optional[User]:
        row = self._fetch_one(
            select(users_table.c.id, users_table.c.username, users_table.c.created_at).where(
                users_table.c.id == user_id
            )
        )
        return _row_to_user(row) if row else None

    def find_by_username(self, username: str) -> Optional[User]:
        row = self._fetch_one(
            select(users_table.c.id, users_table.c.username, users_table.c.created_at).where(
                users_table.c.username == username
            )
        )
        return _row_to_user(row) if row else None

    def get_password_hash(self, username: str) -> Optional[str]:
        row = self._fetch_one(
            select(users_table.c.pass_hash).where(users_table.c.username == username)
        )
        return row.pass_hash if row else None

    def list_users(self) -> List[User]:
        stmt = select(users_table.c.id, users_table.c.username, users_table.c.created_at).order_by(
            users_table.c.created_at, users_table.c.username
        )
        try:
            with self.engine.connect() as conn:
                return [_row_to_user(r) for r in conn.execute(stmt)]
        except SQLAlchemyError as e:
            logger.exception("Credential store read failed")
            raise StoreUnavailable() from e

    # ------------------ Update / Delete ------------------

    def _write(self, stmt) -> None:
        try:
            with self.engine.begin() as conn:
                changed = conn.execute(stmt).rowcount
        except IntegrityError as e:
            raise AlreadyExists() from e
        except SQLAlchemyError as e:
            logger.exception("Credential store write failed")
            raise StoreUnavailable() from e
        if changed == 0:
            raise NotFound("User not found")

    def change_username(self, user_id: str, new_username: str) -> None:
        self._write(update(users_table).where(users_table.c.id == user_id).values(username=new_username))

    def change_password_hash(self, user_id: str, pass_hash: str) -> None:
        self._write(update(users_table).where(users_table.c.id == user_id).values(pass_hash=pass_hash))

    def delete_user(self, user_id: str) -> None:
        self._write(delete(users_table).where(users_table.c.id == user_id))
