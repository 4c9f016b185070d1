"""Authenticated identity as seen by the cache.

The dashboard's auth store resolves the signed-in user and their role from
Supabase. The cache only needs the result: who is signed in, with which role,
and for branch admins which branch they are scoped to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

SUPER_ADMIN = "super_admin"
ADMIN_BRANCH = "admin_branch"


@dataclass(frozen=True)
class Identity:
    """Signed-in principal.

    Attributes:
        user_id: Supabase auth user id
        role: "super_admin", "admin_branch", or None when unresolved
        branch_id: Branch the user is scoped to, if any
    """

    user_id: str
    role: str | None = None
    branch_id: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    @property
    def effective_role(self) -> str:
        """Role used to pick data scope; unresolved roles fall back to super admin."""
        return self.role or SUPER_ADMIN

    @property
    def scoped_branch(self) -> str | None:
        """Branch to scope queries to, or None for organisation-wide data."""
        if self.effective_role == SUPER_ADMIN:
            return None
        return self.branch_id


class IdentityProvider(Protocol):
    """Source of the current identity."""

    async def current(self) -> Identity | None:
        """Return the signed-in identity, or None when signed out."""
        ...


class StaticIdentityProvider:
    """Identity provider holding an identity set by the host application."""

    def __init__(self, identity: Identity | None = None) -> None:
        self.identity = identity

    async def current(self) -> Identity | None:
        return self.identity

    def set(self, identity: Identity | None) -> None:
        self.identity = identity
