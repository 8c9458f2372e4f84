"""Authentication: JWT bearer tokens identifying team members, bcrypt link passwords.

Issuing tokens is owned by the identity service in front of LinkVault;
this module only validates them and maps the subject to a member.
"""

from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt

from linkvault.config import settings
from linkvault.models.member import Member
from linkvault.services.directory import get_member

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Hash a link password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a link password against its hash."""
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def create_access_token(member_id: str, expires_days: int | None = None) -> str:
    """Create a JWT access token for a member."""
    if expires_days is None:
        expires_days = settings.token_expiry_days
    expire = datetime.now(timezone.utc) + timedelta(days=expires_days)
    payload = {
        "sub": member_id,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises JWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])


async def _member_from_request(request: Request) -> Member | None:
    """Resolve the calling member, or None when no token was presented."""
    if settings.disable_auth:
        return await get_member(settings.dev_member_id)

    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Malformed authorization header")

    token = auth_header.split(" ", 1)[1]
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    member = await get_member(payload.get("sub", ""))
    if member is None:
        raise HTTPException(status_code=401, detail="Unknown member")
    return member


async def optional_auth(request: Request) -> Member | None:
    """FastAPI dependency for endpoints that anonymous viewers may call."""
    return await _member_from_request(request)


async def require_auth(request: Request) -> Member:
    """FastAPI dependency that enforces an authenticated member."""
    member = await _member_from_request(request)
    if member is None:
        raise HTTPException(status_code=401, detail="Missing authentication token")
    return member


async def require_admin(member: Member = Depends(require_auth)) -> Member:
    """FastAPI dependency for team admin endpoints."""
    if not member.is_admin or member.team_id is None:
        raise HTTPException(status_code=403, detail="Team admin access required")
    return member
