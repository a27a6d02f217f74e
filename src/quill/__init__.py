# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Quill: a small personal blog with a password-protected admin console."""

__version__ = "0.1.0"
