# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication core.

This package provides:
- Password hashing/verification (argon2)
- The SQLite credential store (SQLAlchemy)
- Sealed session cookies (itsdangerous + AES-GCM)
- Session resolution against the store and the registration/login service
"""
