# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process-wide configuration, read once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Anchor defaults to the project root, not the current working directory.
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_DIR = BASE_DIR / "data"

SEVEN_DAYS = 60 * 60 * 24 * 7


def _truthy(value: str) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    database_url: str
    users_path: Path
    session_max_age: int = SEVEN_DAYS
    cookie_secure: bool = False
    log_level: str = "INFO"


def load_settings() -> Settings:
    secret = os.getenv("QUILL_SECRET_KEY") or os.getenv("SECRET_KEY")
    if not secret:
        raise RuntimeError("Missing QUILL_SECRET_KEY (or SECRET_KEY) in environment")

    data_dir = Path(os.getenv("QUILL_DATA_DIR", str(DEFAULT_DATA_DIR))).resolve()
    database_url = os.getenv("QUILL_DATABASE_URL") or f"sqlite:///{data_dir / 'quill.sqlite3'}"
    users_path = Path(os.getenv("QUILL_USERS_PATH", str(data_dir / "admins.yml"))).resolve()

    return Settings(
        secret_key=secret,
        database_url=database_url,
        users_path=users_path,
        session_max_age=int(os.getenv("QUILL_SESSION_MAX_AGE", str(SEVEN_DAYS))),
        cookie_secure=_truthy(os.getenv("QUILL_COOKIE_SECURE", "false")),
        log_level=os.getenv("QUILL_LOG_LEVEL", "INFO").upper(),
    )
