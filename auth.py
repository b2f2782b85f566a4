"""
Bearer-token authentication and role checks.

One verifier is active per application (``app.state.verifier``): either
``JWTVerifier`` for tokens issued by ``POST /jwt`` or the identity-provider
verifier from ``identity.py``. Both expose ``verify(token) -> claims`` and
raise ``InvalidToken`` on any rejection.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt

from config import Settings
from database import Database, get_db

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class InvalidToken(Exception):
    pass


def issue_token(claims: Dict[str, Any], settings: Settings) -> str:
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(days=settings.token_expire_days)
    return jwt.encode(to_encode, settings.access_token_secret, algorithm=ALGORITHM)


class JWTVerifier:
    def __init__(self, secret: str):
        self.secret = secret

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc


def build_verifier(settings: Settings):
    if settings.auth_provider == "firebase":
        from identity import FirebaseVerifier
        return FirebaseVerifier(settings.firebase_credentials)
    if settings.auth_provider != "jwt":
        raise ValueError(f"Unknown AUTH_PROVIDER: {settings.auth_provider}")
    if not settings.access_token_secret:
        logger.warning("ACCESS_TOKEN_SECRET is empty; issued tokens are not secure")
    return JWTVerifier(settings.access_token_secret)


def authenticate(request: Request) -> Dict[str, Any]:
    """Verify the bearer token in the Authorization header.

    The header is read directly rather than through ``HTTPBearer``: only a
    missing header is a 401. A header with any other scheme or no token
    part still goes to the verifier and comes back as a 403.
    """
    header = request.headers.get("authorization")
    if not header:
        raise HTTPException(status_code=401, detail="Unauthorized")
    parts = header.split(" ")
    token = parts[1] if len(parts) > 1 else ""

    verifier = getattr(request.app.state, "verifier", None)
    if verifier is None:
        raise HTTPException(status_code=503, detail="Authentication not ready")
    try:
        claims = verifier.verify(token)
    except InvalidToken as exc:
        logger.debug("Token rejected on %s: %s", request.url.path, exc)
        raise HTTPException(status_code=403, detail="Forbidden")
    request.state.decoded = claims
    return claims


def require_role(*roles: str):
    """Dependency factory: a valid token whose owner holds one of ``roles``.

    The role is looked up in the users collection by the token's ``email``
    claim. Role checks are opt-in (``ENFORCE_ROLES=true``); by default
    only the token is checked.
    """
    def role_dep(
        request: Request,
        claims: Dict[str, Any] = Depends(authenticate),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        if not request.app.state.settings.enforce_roles:
            return claims
        role = db.role_of(claims.get("email"))
        if role not in roles:
            logger.info("Denied %s %s to role %r", request.method, request.url.path, role)
            raise HTTPException(status_code=403, detail="Forbidden")
        return claims
    return role_dep
