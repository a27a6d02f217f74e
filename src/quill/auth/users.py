# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Administrator credential store backed by a YAML file.

File layout::

    version: 1
    admins:
      alice:
        id: 5f0c...
        password_hash: $argon2id$...
        created_at: '2026-01-01T00:00:00+00:00'
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from quill.auth.passwords import hash_password, verify_password


@dataclass(frozen=True)
class Administrator:
    id: str
    username: str
    password_hash: str
    created_at: str


def _load_admins_file(path: Path) -> Dict[str, Administrator]:
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    admins = (raw.get("admins") or {}) if isinstance(raw, dict) else {}
    out: Dict[str, Administrator] = {}
    for uname, udata in admins.items():
        if not isinstance(udata, dict):
            continue
        # Usernames are case-sensitive; only surrounding whitespace is dropped.
        username = str(uname).strip()
        if not username:
            continue
        out[username] = Administrator(
            id=str(udata.get("id") or "").strip(),
            username=username,
            password_hash=str(udata.get("password_hash") or "").strip(),
            created_at=str(udata.get("created_at") or ""),
        )
    return out


class CredentialStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._cache: Tuple[float, Dict[str, Administrator]] = (0.0, {})
        self._lock = threading.Lock()

    def all(self) -> Dict[str, Administrator]:
        try:
            mtime = self.path.stat().st_mtime if self.path.exists() else 0.0
        except OSError:
            mtime = 0.0

        cached_mtime, cached = self._cache
        if mtime and mtime == cached_mtime and cached:
            return cached

        admins = _load_admins_file(self.path)
        self._cache = (mtime, admins)
        return admins

    def get(self, username: str) -> Optional[Administrator]:
        # Exact match: no trimming, no case folding.
        if not username:
            return None
        return self.all().get(username)

    def authenticate(self, username: str, password: str) -> Optional[Administrator]:
        admin = self.get(username)
        if not admin:
            return None
        if not verify_password(admin.password_hash, password):
            return None
        return admin

    def add(self, username: str, password: str) -> Administrator:
        """Provision a new administrator. Existing usernames are never overwritten."""
        username = (username or "").strip()
        if not username:
            raise ValueError("Username must not be empty")

        with self._lock:
            if self.path.exists():
                raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
            else:
                raw = {"version": 1, "admins": {}}
            if not isinstance(raw.get("admins"), dict):
                raw["admins"] = {}
            if username in raw["admins"]:
                raise ValueError(f"Administrator '{username}' already exists")

            admin = Administrator(
                id=uuid.uuid4().hex,
                username=username,
                password_hash=hash_password(password),
                created_at=datetime.now(timezone.utc).isoformat(),
            )
            raw["admins"][username] = {
                "id": admin.id,
                "password_hash": admin.password_hash,
                "created_at": admin.created_at,
            }
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
            self._cache = (0.0, {})
        return admin
