import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..config import AUTH_COOKIE_NAME
from ..database import get_db
from ..models.user import User, UserToken
from .error_handlers import AuthenticationError, get_error_message
from .jwt import decode_access_token

logger = logging.getLogger(__name__)


def get_token_from_request(request: Request) -> str | None:
    """Bearer header wins; the HTTP-only cookie is the fallback transport."""
    header = request.headers.get("Authorization") or ""
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(AUTH_COOKIE_NAME) or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = get_token_from_request(request)
    if not token:
        raise AuthenticationError(get_error_message("authentication_required"))

    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        raise AuthenticationError()

    # The JWT alone is not enough: it must still be in the user's live token set.
    user = (
        db.query(User)
        .join(UserToken, UserToken.user_id == User.id)
        .filter(User.id == str(payload["sub"]), UserToken.token == token)
        .first()
    )
    if not user:
        raise AuthenticationError()

    request.state.auth_token = token
    return user
