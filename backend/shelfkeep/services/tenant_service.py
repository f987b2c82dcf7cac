# Overview: Owner scoping helpers shared by the catalog and sales services.

"""
Owner Scoping

Every catalog, stock and sales operation runs on behalf of one owner (the
`sub` of the caller's verified token). Services take that id explicitly and
refuse to run without it.
"""
from __future__ import annotations

from ..errors import Unauthorized


def require_owner(owner_id: str | None) -> str:
    """Return the owner id, or raise Unauthorized when the caller is anonymous."""
    if not owner_id:
        raise Unauthorized("Authentication required")
    return owner_id
