# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""notegate: session-authenticated access control for a small notes service."""

__version__ = "0.1.0"
