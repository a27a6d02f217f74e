#!/usr/bin/env python3
from __future__ import annotations

import os
from getpass import getpass
from pathlib import Path

from quill.auth.users import CredentialStore
from quill.settings import DEFAULT_DATA_DIR

DATA_DIR = Path(os.getenv("QUILL_DATA_DIR", str(DEFAULT_DATA_DIR)))
USERS_PATH = Path(os.getenv("QUILL_USERS_PATH", str(DATA_DIR / "admins.yml"))).resolve()


def main() -> None:
    store = CredentialStore(USERS_PATH)

    username = input("Username: ").strip()
    if store.get(username):
        raise SystemExit(f"Administrator '{username}' already exists")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        admin = store.add(username, pw1)
    except ValueError as e:
        raise SystemExit(str(e))
    print(f"OK -> {USERS_PATH} (id {admin.id})")


if __name__ == "__main__":
    main()
