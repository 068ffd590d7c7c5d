# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Notes owned by users.

Every accessor takes the confirmed Identity first and filters rows by its id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from notegate.auth.identity import Identity, is_identity
from notegate.auth.users import metadata
from notegate.errors import StoreUnavailable, Unauthenticated

logger = logging.getLogger(__name__)

notes_table = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("title", String, nullable=False),
    Column("body", Text, nullable=False),
)


@dataclass(frozen=True)
class Note:
    id: int
    title: str
    body: str


def _owner(identity: Identity) -> str:
    if not is_identity(identity):
        raise Unauthenticated()
    return identity.id


class NoteStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine, tables=[notes_table])
        except SQLAlchemyError as e:
            logger.exception("Could not create notes table")
            raise StoreUnavailable() from e

    def add_note(self, identity: Identity, title: str, body: str) -> Note:
        owner = _owner(identity)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(notes_table.insert().values(owner_id=owner, title=title, body=body))
                note_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            logger.exception("Could not insert note")
            raise StoreUnavailable() from e
        return Note(id=note_id, title=title, body=body)

    def read_note(self, identity: Identity, note_id: int) -> Optional[Note]:
        owner = _owner(identity)
        stmt = select(notes_table.c.id, notes_table.c.title, notes_table.c.body).where(
            notes_table.c.id == note_id, notes_table.c.owner_id == owner
        )
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            logger.exception("Could not read note")
            raise StoreUnavailable() from e
        return Note(id=row.id, title=row.title, body=row.body) if row else None

    def list_notes(self, identity: Identity) -> List[Note]:
        owner = _owner(identity)
        stmt = (
            select(notes_table.c.id, notes_table.c.title, notes_table.c.body)
            .where(notes_table.c.owner_id == owner)
            .order_by(notes_table.c.id)
        )
        try:
            with self.engine.connect() as conn:
                return [Note(id=r.id, title=r.title, body=r.body) for r in conn.execute(stmt)]
        except SQLAlchemyError as e:
            logger.exception("Could not list notes")
            raise StoreUnavailable() from e
