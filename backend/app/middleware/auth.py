"""JWT authentication middleware and dependencies.

Tokens carry the actor id in ``sub`` and the account type in ``type``;
the type claim is informational, every dependency re-reads the actor row.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.actor import Actor

security = HTTPBearer(auto_error=False)

# bcrypt only reads the first 72 bytes and bcrypt>=4.1 raises on longer input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a login attempt; a malformed stored hash counts as a mismatch."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(actor: Actor, expires_minutes: Optional[int] = None) -> str:
    """Issue a bearer token for ``actor``."""
    lifetime = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    claims = {"sub": actor.id, "type": actor.type, "iat": now, "exp": now + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    if not claims.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return claims


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Actor:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    claims = decode_token(credentials.credentials)
    actor = db.query(Actor).filter(Actor.id == claims["sub"]).first()
    if not actor:
        raise HTTPException(status_code=401, detail="Actor not found")
    return actor


def require_model(current_actor: Actor = Depends(get_current_actor)) -> Actor:
    if current_actor.type != "model":
        raise HTTPException(status_code=403, detail="Model account required")
    return current_actor


def require_admin(current_actor: Actor = Depends(get_current_actor)) -> Actor:
    if current_actor.type != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    return current_actor


def get_optional_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[Actor]:
    """Like get_current_actor, but anonymous requests yield None."""
    if credentials is None:
        return None
    return get_current_actor(credentials, db)
