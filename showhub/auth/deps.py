from __future__ import annotations

from typing import Callable, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database

from showhub.config import Config
from showhub.models import Identity, Role

from .crud import get_role, normalize_email
from .security import decode_access_token


# auto_error=False so a missing/malformed header yields our 401, not FastAPI's 403.
_bearer = HTTPBearer(auto_error=False)


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_cfg(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="server_config_missing")
    return cfg


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=500, detail="store_missing")
    return db


def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    cfg: Config = Depends(get_cfg),
) -> Identity:
    """Authenticate a request from its ``Authorization: Bearer <token>`` header."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized("missing_token")

    if not cfg.AUTH_JWT_SECRET:
        raise HTTPException(status_code=500, detail="server_config_missing")

    try:
        payload = decode_access_token(token=credentials.credentials, secret=cfg.AUTH_JWT_SECRET)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("token_expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("token_invalid")

    email = normalize_email(payload.get("email"))
    if not email:
        raise _unauthorized("token_missing_email")

    return Identity(email=email, claims=payload)


def require_role(role: Role) -> Callable[..., Identity]:
    """Build a dependency that admits only identities whose stored role is exactly ``role``.

    Runs after require_token (so an auth failure short-circuits first) and
    re-reads the role on every request; role changes apply immediately.
    """

    detail = f"{role.value.lower()}_required"

    def _check(
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
        cfg: Config = Depends(get_cfg),
    ) -> Identity:
        current = get_role(db, identity.email)
        if current != role:
            if cfg.AUTH_DEBUG_DENIALS:
                _debug(f"denied email={identity.email} role={current} required={role.value}")
            raise HTTPException(status_code=403, detail=detail)
        return identity

    _check.__name__ = f"require_{role.value.lower()}"
    return _check


require_admin = require_role(Role.ADMIN)
require_moderator = require_role(Role.MODERATOR)
