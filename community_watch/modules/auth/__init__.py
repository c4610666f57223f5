# Authentication module

from community_watch.modules.auth.dependencies import (
    get_current_claims,
    get_current_admin,
    get_current_superadmin,
)

__all__ = [
    "get_current_claims",
    "get_current_admin",
    "get_current_superadmin",
]
