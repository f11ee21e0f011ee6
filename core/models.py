"""
core/models.py -- Domain dataclasses for the News API.

Pure data containers with zero logic. Stores build them from rows, route
handlers map them to the pydantic response models in api/models.py.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    password_hash is a bcrypt hash; the plaintext is never stored and the hash
    never leaves the server. id is a UUID string assigned at registration.
    """

    id: str
    username: str
    password_hash: str
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class News:
    """A news article.

    author holds the id of the User that created it. id and created_at are
    fixed at creation; stores never rewrite them on update.
    """

    id: str
    title: str
    body: str
    author: str
    created_at: str = ""  # ISO 8601 UTC, set by store on insert
