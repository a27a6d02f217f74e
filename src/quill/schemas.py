# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request bodies accepted by the JSON API.

Unknown fields are rejected before any handler logic runs.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = ""
    password: str = ""


class PostIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = ""
    slug: str = ""
    content: str = ""
    excerpt: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    published: bool = False
