# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from notegate.auth.identity import Fail, Identity, Outcome, Redirect
from notegate.auth.passwords import PasswordHasher
from notegate.auth.resolver import SessionResolver
from notegate.auth.service import AuthService
from notegate.auth.session import SessionSealer
from notegate.auth.users import CredentialStore, open_engine
from notegate.config import Settings, load_settings
from notegate.errors import AuthError, StoreUnavailable, Unauthenticated, ValidationError
from notegate.notes import NoteStore
from notegate.permissions import (
    access_guard,
    cookie_settings,
    current_user_optional,
    login_redirect_url,
    request_identity,
    require_user,
)


def _safe_next(next_url: str) -> str:
    """Only same-site paths; anything else goes home."""
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return "/"
    return n


def _sets_cookie(response: Response, name: str) -> bool:
    prefix = f"{name}="
    return any(
        k.lower() == b"set-cookie" and v.decode("latin-1").startswith(prefix)
        for k, v in response.raw_headers
    )


def _note_json(note) -> dict:
    return {"id": note.id, "title": note.title, "body": note.body}


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[CredentialStore] = None,
    notes: Optional[NoteStore] = None,
    hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """Composition root: every collaborator is built once here and shared."""
    settings = settings or load_settings()
    if store is None:
        store = CredentialStore(open_engine(settings.db_path))
    store.create_schema()
    if notes is None:
        notes = NoteStore(store.engine)
    notes.create_schema()

    hasher = hasher or PasswordHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )
    sealer = SessionSealer(settings.secret_key, max_age=settings.session_max_age)

    app = FastAPI(title="notegate")
    app.state.settings = settings
    app.state.store = store
    app.state.notes = notes
    app.state.resolver = SessionResolver(sealer, store)
    app.state.auth = AuthService(store, hasher, sealer, settings)

    cookie_name = settings.cookie_name

    def _set_session_cookie(resp: Response, token: Optional[str]) -> Response:
        if token:
            resp.set_cookie(cookie_name, token, max_age=settings.session_max_age, **cookie_settings(settings))
        else:
            resp.delete_cookie(cookie_name, **cookie_settings(settings))
        return resp

    def _outcome_response(outcome: Outcome, *, status_code: int = 200) -> Response:
        if isinstance(outcome, Redirect):
            resp = RedirectResponse(url=outcome.location, status_code=303)
            if outcome.clear_session:
                resp.delete_cookie(cookie_name, **cookie_settings(settings))
            return resp
        if isinstance(outcome, Fail):
            return JSONResponse({"error": outcome.kind, "detail": outcome.message}, status_code=503)
        value = outcome.value
        if value is None:
            return JSONResponse({"error": "not_found", "detail": "Not found"}, status_code=404)
        if isinstance(value, list):
            return JSONResponse([_note_json(n) for n in value], status_code=status_code)
        return JSONResponse(_note_json(value), status_code=status_code)

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        memo = request_identity(request)
        response = await call_next(request)
        resolution = memo.peek()
        if getattr(resolution, "clear_session", False) and not _sets_cookie(response, cookie_name):
            response.delete_cookie(cookie_name, **cookie_settings(settings))
        return response

    @app.exception_handler(Unauthenticated)
    async def _unauthenticated(request: Request, exc: Unauthenticated):
        resp = RedirectResponse(url=login_redirect_url(request), status_code=303)
        if exc.clear_session:
            resp.delete_cookie(cookie_name, **cookie_settings(settings))
        return resp

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable):
        return JSONResponse({"error": exc.kind, "detail": exc.public_message}, status_code=exc.status_code)

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError):
        detail = str(exc) if isinstance(exc, ValidationError) else exc.public_message
        return JSONResponse({"error": exc.kind, "detail": detail}, status_code=exc.status_code)

    # ------------------ Routes ------------------

    @app.get("/login")
    async def login_get(request: Request, next: str = "/"):
        if await current_user_optional(request):
            return RedirectResponse(url=_safe_next(next), status_code=303)
        return JSONResponse({"detail": "Login required", "next": _safe_next(next)})

    @app.post("/login")
    def login_post(
        request: Request,
        username: str = Form(...),
        password: str = Form(...),
        next: str = Form("/"),
    ):
        current = app.state.auth.sealer.unseal(request.cookies.get(cookie_name))
        token = app.state.auth.login(username, password, theme=current.theme if current else None)
        resp = RedirectResponse(url=_safe_next(next), status_code=303)
        return _set_session_cookie(resp, token)

    @app.post("/register")
    def register_post(username: str = Form(...), password: str = Form(...)):
        user = app.state.auth.register(username, password)
        return JSONResponse({"id": user.id, "username": user.username}, status_code=201)

    @app.post("/logout")
    def logout_post(request: Request):
        token = app.state.auth.logout(request.cookies.get(cookie_name))
        resp = RedirectResponse(url="/login", status_code=303)
        return _set_session_cookie(resp, token)

    @app.post("/preferences/theme")
    def theme_post(request: Request, theme: str = Form("")):
        theme = theme.strip()[:32]
        token = app.state.auth.with_theme(request.cookies.get(cookie_name), theme)
        resp = JSONResponse({"theme": theme or None})
        return _set_session_cookie(resp, token)

    @app.get("/me")
    async def me(request: Request):
        user = await current_user_optional(request)
        if user is None:
            return {"user": None}
        return {"user": {"id": user.id, "username": user.username}}

    @app.get("/")
    async def home(user: Identity = Depends(require_user)):
        return {"id": user.id, "username": user.username}

    @app.get("/notes")
    async def notes_index(request: Request):
        outcome = await access_guard(request).run(app.state.notes.list_notes)
        return _outcome_response(outcome)

    @app.get("/notes/{note_id}")
    async def notes_read(request: Request, note_id: int):
        outcome = await access_guard(request).run(app.state.notes.read_note, note_id)
        return _outcome_response(outcome)

    @app.post("/notes")
    async def notes_create(request: Request, title: str = Form(...), body: str = Form("")):
        outcome = await access_guard(request).run(app.state.notes.add_note, title, body)
        return _outcome_response(outcome, status_code=201)

    return app
