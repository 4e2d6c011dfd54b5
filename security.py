"""
Authentication helpers: password hashing, JWT issuing/verification, and the
request-scoped actor dependency used by every protected route.
"""
import hashlib
import logging
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from pydantic import BaseModel

from database import create_document, get_db
from schemas import ROLE_ADMIN, Credential, PasswordHash, RevokedToken

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "change-me"
JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))


class Actor(BaseModel):
    """Identity of the caller, passed explicitly into engine operations."""
    id: str
    role: str
    jti: Optional[str] = None
    exp: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


# ---------------------------
# Passwords
# ---------------------------

def hash_password(password: str, salt: Optional[str] = None) -> Dict[str, str]:
    salt = salt or secrets.token_hex(8)
    hashed = hashlib.sha256((salt + password).encode()).hexdigest()
    return {"salt": salt, "hash": hashed}


def verify_password(password: str, salt: str, hash_val: str) -> bool:
    candidate = hashlib.sha256((salt + password).encode()).hexdigest()
    return secrets.compare_digest(candidate, hash_val)


# ---------------------------
# Tokens
# ---------------------------

def create_access_token(credential_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=JWT_EXPIRE_MINUTES))
    claims = {
        "id": str(credential_id),
        "role": role,
        "jti": secrets.token_urlsafe(16),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        return None


def check_jwt_secret(secret: Optional[str] = None) -> bool:
    """Warn when tokens are signed with the built-in fallback secret."""
    if (secret if secret is not None else JWT_SECRET) == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; tokens are signed with the insecure default secret")
        return False
    return True


def revoke_token(db, actor: Actor, expires_at: Optional[datetime] = None) -> None:
    """Blacklist the caller's token until it would have expired anyway."""
    if not actor.jti:
        return
    expires_at = expires_at or actor.exp
    db["revokedtoken"].update_one(
        {"jti": actor.jti},
        {"$setOnInsert": RevokedToken(jti=actor.jti, expires_at=expires_at).model_dump()},
        upsert=True,
    )
    logger.info("Revoked token %s for credential %s", actor.jti, actor.id)


# ---------------------------
# Dependencies
# ---------------------------

def get_current_actor(authorization: Optional[str] = Header(None), db=Depends(get_db)) -> Actor:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Invalid auth scheme")
    token = authorization.split(" ", 1)[1].strip()
    payload = decode_token(token)
    if not payload or not payload.get("id") or not payload.get("role"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    jti = payload.get("jti")
    if jti and db["revokedtoken"].find_one({"jti": jti}):
        raise HTTPException(status_code=401, detail="Token has been revoked")
    exp = payload.get("exp")
    expires_at = datetime.fromtimestamp(exp, timezone.utc) if exp is not None else None
    return Actor(id=payload["id"], role=payload["role"], jti=jti, exp=expires_at)


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor


# ---------------------------
# Login & bootstrap
# ---------------------------

def authenticate(db, email: str, password: str) -> Optional[Dict[str, Any]]:
    """Return the credential document when the email/password pair matches."""
    cred = db["credential"].find_one({"email": email.lower()})
    if not cred or "password" not in cred:
        return None
    if not verify_password(password, cred["password"]["salt"], cred["password"]["hash"]):
        return None
    return cred


def seed_admin(db, email: Optional[str], password: Optional[str]) -> Optional[str]:
    """Create the bootstrap admin credential if it does not exist yet."""
    if not email or not password:
        return None
    existing = db["credential"].find_one({"email": email.lower()})
    if existing:
        return str(existing["_id"])
    cred = Credential(email=email.lower(), password=PasswordHash(**hash_password(password)), role=ROLE_ADMIN)
    new_id = create_document(db, "credential", cred)
    logger.info("Seeded admin credential %s", email.lower())
    return new_id
