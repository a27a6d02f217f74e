# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application error taxonomy.

Each error carries the HTTP status it is answered with; handlers in
``quill.app`` turn them into ``{"error": message}`` JSON bodies.
"""

from __future__ import annotations

from http import HTTPStatus


class AppError(Exception):
    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(AppError):
    status_code = HTTPStatus.BAD_REQUEST


class AuthenticationError(AppError):
    status_code = HTTPStatus.UNAUTHORIZED


class NotFoundError(AppError):
    status_code = HTTPStatus.NOT_FOUND


class ConflictError(AppError):
    status_code = HTTPStatus.CONFLICT


class InternalError(AppError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
