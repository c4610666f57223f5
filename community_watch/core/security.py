from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from pydantic import BaseModel
import bcrypt

from community_watch.core.config import settings
from community_watch.core.exceptions import InvalidTokenError, ForbiddenError

ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"

# Roles that satisfy each requirement
_ROLE_GRANTS = {
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_SUPERADMIN},
    ROLE_SUPERADMIN: {ROLE_SUPERADMIN},
}

_dummy_hash: Optional[bytes] = None


class Claims(BaseModel):
    """Identity carried by a validated session token"""
    user_id: int
    username: str
    role: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def burn_password_check(plain_password: str) -> None:
    """
    Spend one bcrypt verification on a throwaway hash.

    Called when the username does not exist so that an unknown user and a
    wrong password take the same time to reject.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = bcrypt.hashpw(b"community-watch", bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    bcrypt.checkpw(plain_password.encode('utf-8')[:72], _dummy_hash)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    issued_at = datetime.utcnow()
    if expires_delta:
        expire = issued_at + expires_delta
    else:
        expire = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"iat": issued_at, "exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def issue_token(user) -> str:
    """Issue a session token bound to an administrator's id, username and role"""
    return create_access_token({
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
    })


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token (signature and expiry are checked by jose)"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        raise InvalidTokenError()


def validate_token(token: Optional[str]) -> Claims:
    """Turn a bearer token into claims, or raise InvalidTokenError"""
    if not token:
        raise InvalidTokenError()

    payload = decode_token(token)

    if payload.get("type") != "access":
        raise InvalidTokenError()

    try:
        return Claims(
            user_id=int(payload["sub"]),
            username=payload["username"],
            role=payload["role"],
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError()


def require_role(claims: Claims, required_role: str) -> Claims:
    """Raise ForbiddenError unless the claims' role satisfies required_role"""
    if claims.role not in _ROLE_GRANTS.get(required_role, set()):
        if required_role == ROLE_SUPERADMIN:
            raise ForbiddenError()
        raise ForbiddenError("Admin access required")
    return claims
