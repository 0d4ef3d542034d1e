"""
Password hashing and session tokens.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """The authenticated user behind a request."""
    id: str
    email: str
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name}


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_session_token(identity: Identity, secret: str, ttl_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity.id,
        "email": identity.email,
        "name": identity.name,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_session_token(token: str, secret: str) -> Optional[Identity]:
    """Return the identity in a token, or None for any invalid, expired or incomplete token."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return Identity(id=str(user_id), email=payload.get("email") or "", name=payload.get("name"))
