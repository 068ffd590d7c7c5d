# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the store, the auth service and the web layer.

Every error carries a stable ``kind`` used to shape responses. Messages are
safe to show to a client; internal detail is logged, never attached here.
"""

from __future__ import annotations


class AuthError(Exception):
    kind = "auth_error"
    status_code = 400
    public_message = "Request failed"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.public_message)


class ValidationError(AuthError):
    kind = "validation_error"
    status_code = 422
    public_message = "Invalid input"


class InvalidCredentials(AuthError):
    kind = "invalid_credentials"
    status_code = 401
    public_message = "Invalid username or password"


class Unauthenticated(AuthError):
    kind = "unauthenticated"
    status_code = 401
    public_message = "Authentication required"

    def __init__(self, message: str = "", *, clear_session: bool = False) -> None:
        super().__init__(message)
        self.clear_session = clear_session


class RegistrationClosed(AuthError):
    kind = "registration_closed"
    status_code = 403
    public_message = "Registration is currently closed"


class AlreadyExists(AuthError):
    kind = "already_exists"
    status_code = 409
    public_message = "User already exists"


class NotFound(AuthError):
    kind = "not_found"
    status_code = 404
    public_message = "Not found"


class AdministrationDisabled(AuthError):
    kind = "administration_disabled"
    status_code = 403
    public_message = "Administrative operations are not enabled"


class StoreUnavailable(AuthError):
    kind = "store_unavailable"
    status_code = 503
    public_message = "Service temporarily unavailable"
