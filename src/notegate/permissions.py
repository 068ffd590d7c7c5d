# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional
from urllib.parse import quote

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from notegate.auth.identity import Fail, Identity, Ok, Outcome, Redirect, Resolution, is_identity
from notegate.auth.resolver import SessionResolver
from notegate.config import Settings
from notegate.errors import StoreUnavailable, Unauthenticated

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


class RequestIdentity:
    """Resolves the session at most once per request.

    The first caller starts a single resolution task; later and concurrent
    callers await that same task, so they all see one answer. Awaiting goes
    through ``asyncio.shield``: a cancelled caller leaves the store work to
    finish and be discarded.
    """

    def __init__(self, resolver: SessionResolver, token: Optional[str]) -> None:
        self._resolver = resolver
        self._token = token
        self._task: Optional[asyncio.Future] = None
        self.lookups = 0

    def _start(self) -> asyncio.Future:
        self.lookups += 1
        return asyncio.ensure_future(run_in_threadpool(self._resolver.resolve, self._token))

    async def get(self) -> Resolution:
        if self._task is None:
            self._task = self._start()
        return await asyncio.shield(self._task)

    def peek(self) -> Optional[Resolution]:
        """The resolution if it has already finished, else None."""
        if self._task is None or not self._task.done() or self._task.cancelled():
            return None
        if self._task.exception() is not None:
            return None
        return self._task.result()


class AccessGuard:
    """Gate for protected operations.

    ``is_authorized`` is the one signal consumers may reveal content on. It
    goes from False to True once, after a confirmed identity, and never back.
    """

    def __init__(self, memo: RequestIdentity, *, login_url: str = LOGIN_PATH) -> None:
        self._memo = memo
        self._login_url = login_url
        self._authorized = False

    @property
    def is_authorized(self) -> bool:
        return self._authorized

    async def check(self) -> Outcome:
        resolution = await self._memo.get()
        if is_identity(resolution):
            self._authorized = True
            return Ok(resolution)
        return Redirect(self._login_url, clear_session=bool(getattr(resolution, "clear_session", False)))

    async def run(self, accessor: Callable[..., Any], *args: Any, **kwargs: Any) -> Outcome:
        """Confirm the identity, then call ``accessor(identity, *args)``.

        The accessor is never called unless the check succeeded.
        """
        outcome = await self.check()
        if not isinstance(outcome, Ok):
            return outcome
        identity: Identity = outcome.value
        try:
            if inspect.iscoroutinefunction(accessor):
                value = await accessor(identity, *args, **kwargs)
            else:
                value = await run_in_threadpool(accessor, identity, *args, **kwargs)
        except StoreUnavailable:
            logger.exception("Protected accessor failed")
            return Fail(StoreUnavailable.kind, StoreUnavailable.public_message)
        return Ok(value)


# ------------------ FastAPI seams ------------------


def login_redirect_url(request: Request) -> str:
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    return f"{LOGIN_PATH}?next={quote(next_url, safe='/')}"


def request_identity(request: Request) -> RequestIdentity:
    memo = getattr(request.state, "identity", None)
    if memo is None:
        settings: Settings = request.app.state.settings
        token = request.cookies.get(settings.cookie_name) or None
        memo = RequestIdentity(request.app.state.resolver, token)
        request.state.identity = memo
    return memo


def access_guard(request: Request) -> AccessGuard:
    """One guard per request, so every consumer reads the same flag."""
    guard = getattr(request.state, "guard", None)
    if guard is None:
        guard = AccessGuard(request_identity(request), login_url=login_redirect_url(request))
        request.state.guard = guard
    return guard


async def current_user_optional(request: Request) -> Optional[Identity]:
    resolution = await request_identity(request).get()
    return resolution if is_identity(resolution) else None


async def require_user(request: Request) -> Identity:
    resolution = await request_identity(request).get()
    if is_identity(resolution):
        return resolution
    raise Unauthenticated(clear_session=bool(getattr(resolution, "clear_session", False)))


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}
