from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import jwt


_JWT_ALG = "HS256"

# Registered claims are always set by the codec; callers cannot override them.
_RESERVED_CLAIMS = ("iat", "exp", "nbf")


def create_access_token(
    *,
    secret: str,
    claims: Mapping[str, Any],
    expires_minutes: int,
    now: Optional[datetime] = None,
) -> str:
    """Sign ``claims`` into a bearer token valid for ``expires_minutes``.

    No authentication happens here: whoever calls this has already decided
    that ``claims["email"]`` is legitimate.
    """
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued = now or datetime.now(timezone.utc)
    exp = issued + timedelta(minutes=max(1, int(expires_minutes)))

    payload: Dict[str, Any] = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
    payload["iat"] = int(issued.timestamp())
    payload["exp"] = int(exp.timestamp())
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify signature and expiry.

    Raises jwt.ExpiredSignatureError past ``exp`` and jwt.InvalidTokenError
    for anything malformed or signed with another secret.
    """
    if not token:
        raise ValueError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(token, secret, algorithms=[_JWT_ALG], options={"require": ["exp"]})
