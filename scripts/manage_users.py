#!/usr/bin/env python3
"""Operator tool for the credential store.

Requires NOTEGATE_SUDO_MODE=true, like every administrative operation.
"""
from __future__ import annotations

import argparse
from getpass import getpass

from notegate.auth.passwords import PasswordHasher
from notegate.auth.service import AuthService
from notegate.auth.session import SessionSealer
from notegate.auth.users import CredentialStore, open_engine
from notegate.config import load_settings
from notegate.errors import AuthError


def _service() -> AuthService:
    settings = load_settings()
    store = CredentialStore(open_engine(settings.db_path))
    store.create_schema()
    hasher = PasswordHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )
    return AuthService(store, hasher, SessionSealer(settings.secret_key), settings)


def _read_password() -> str:
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    return pw1


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage notegate users")
    sub = parser.add_subparsers(dest="command", required=True)
    p = sub.add_parser("create")
    p.add_argument("username")
    p = sub.add_parser("rename")
    p.add_argument("user_id")
    p.add_argument("new_username")
    p = sub.add_parser("passwd")
    p.add_argument("user_id")
    p = sub.add_parser("delete")
    p.add_argument("user_id")
    sub.add_parser("list")
    args = parser.parse_args()

    svc = _service()
    try:
        if args.command == "create":
            user = svc.create_user(args.username, _read_password())
            print(f"OK -> {user.id} {user.username}")
        elif args.command == "rename":
            svc.change_username(args.user_id, args.new_username)
            print("OK")
        elif args.command == "passwd":
            svc.change_password(args.user_id, _read_password())
            print("OK")
        elif args.command == "delete":
            svc.delete_user(args.user_id)
            print("OK")
        else:
            for u in svc.list_users():
                print(f"{u.id}\t{u.username}\t{u.created_at or ''}")
    except AuthError as e:
        raise SystemExit(f"{e.kind}: {e}")


if __name__ == "__main__":
    main()
