from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, PASSWORD_RESET_EXPIRE_MINUTES, SECRET_KEY

ALGORITHM = "HS256"
PASSWORD_RESET_PURPOSE = "password_reset"


def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    # jti keeps two logins within the same second from producing the same token.
    to_encode.update({"exp": expire, "jti": uuid4().hex})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose"):
        return None
    return payload


def create_password_reset_token(user_id: str, password_hash: str) -> str:
    """
    Reset tokens are signed with the secret plus the user's current password hash,
    so a token stops verifying as soon as the password changes.
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
    claims = {"sub": user_id, "purpose": PASSWORD_RESET_PURPOSE, "exp": expire}
    return jwt.encode(claims, SECRET_KEY + password_hash, algorithm=ALGORITHM)


def peek_subject(token: str) -> str | None:
    """Read `sub` without verifying; callers must verify afterwards."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    sub = claims.get("sub")
    return str(sub) if sub else None


def verify_password_reset_token(token: str, password_hash: str) -> dict | None:
    try:
        payload = jwt.decode(token, SECRET_KEY + password_hash, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != PASSWORD_RESET_PURPOSE:
        return None
    return payload
