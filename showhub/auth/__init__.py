"""Authentication / authorization.

- Bearer tokens are short-lived HS256 JWTs carrying an ``email`` claim.
- Roles (Member / Moderator / Admin) live on the user document, never in the
  token, and are looked up on every role-gated request.

Routes pick their requirement statically by depending on one of:
``require_token``, ``require_moderator`` or ``require_admin``.
"""

from .deps import require_admin, require_moderator, require_role, require_token
from .crud import bootstrap_admin_if_needed, create_user

__all__ = [
    "require_token",
    "require_role",
    "require_admin",
    "require_moderator",
    "bootstrap_admin_if_needed",
    "create_user",
]
