"""Blog content entities checked by the permission engine.

Every entity exposes an ``id`` and a ``created_by`` owner; the ownership
fallback filter depends on both.
"""

from dataclasses import dataclass


@dataclass
class Post:
    """Blog post."""

    id: str
    created_by: str
    title: str = ""
    is_published: bool = False


@dataclass
class Comment:
    """Comment on a post."""

    id: str
    post_id: str
    created_by: str
    content: str = ""
    is_approved: bool = False


@dataclass
class Category:
    """Post category."""

    id: str
    name: str
    created_by: str | None = None
    is_active: bool = True


@dataclass
class Tag:
    """Post tag."""

    id: str
    name: str
    created_by: str | None = None
