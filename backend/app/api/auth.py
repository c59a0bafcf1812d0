import logging

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, APP_ENV, AUTH_COOKIE_NAME, AUTH_COOKIE_SECURE
from ..database import get_db, new_object_id, utcnow
from ..models.user import User, UserToken
from ..schemas.payloads import user_to_public
from ..services.emailer import send_password_reset_email, smtp_configured
from ..services.object_storage import PROFILE_IMAGE, RESUME, has_file, store_upload
from ..services.rate_limiter import auth_rate_limit
from ..utils.dependencies import get_current_user
from ..utils.error_handlers import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    get_error_message,
)
from ..utils.jwt import (
    create_access_token,
    create_password_reset_token,
    peek_subject,
    verify_password_reset_token,
)
from ..utils.security import hash_password, verify_password
from ..utils.validation import (
    OBJECT_ID_PATTERN,
    validate_email,
    validate_password,
    validate_role,
    validate_string_field,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"], dependencies=[Depends(auth_rate_limit)])


class LoginRequest(BaseModel):
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirm(BaseModel):
    token: str
    password: str


def _hash(password: str) -> str:
    try:
        return hash_password(password)
    except ValueError:
        raise ValidationError(get_error_message("weak_password"))


def _issue_token(db: Session, user: User) -> str:
    """Mint a JWT and add it to the user's live token set."""
    token = create_access_token({"sub": user.id, "role": user.role})
    db.add(UserToken(user_id=user.id, token=token))
    return token


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=AUTH_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/register", status_code=201)
async def register(
    response: Response,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    role: str | None = Form(default=None),
    profileImage: UploadFile | None = File(default=None),
    resume: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
):
    name = validate_string_field(name, "Name", min_length=1, max_length=255)
    email = validate_email(email)
    validate_password(password)
    user_role = validate_role(role or "jobseeker")

    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError(get_error_message("email_exists"))

    # The id is needed for storage keys before the row exists.
    user_id = new_object_id()
    profile_image_url = await store_upload(profileImage, PROFILE_IMAGE, user_id) if has_file(profileImage) else None
    resume_url = await store_upload(resume, RESUME, user_id) if has_file(resume) else None

    user = User(
        id=user_id,
        name=name,
        email=email,
        password=_hash(password),
        role=user_role.value,
        profile_image=profile_image_url,
        resume=resume_url,
    )
    try:
        db.add(user)
        db.flush()
        token = _issue_token(db, user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise ConflictError(get_error_message("email_exists"))
    except Exception:
        db.rollback()
        raise

    logger.info("Registered %s %s", user.role, user.id)
    _set_auth_cookie(response, token)
    return {"success": True, "user": user_to_public(user), "token": token}


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    email = validate_email(payload.email)
    if not payload.password:
        raise ValidationError("Password is required")

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password):
        raise AuthenticationError(get_error_message("invalid_credentials"))

    try:
        token = _issue_token(db, user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    _set_auth_cookie(response, token)
    return {"success": True, "user": user_to_public(user), "token": token}


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    token = request.state.auth_token
    try:
        db.query(UserToken).filter(UserToken.user_id == user.id, UserToken.token == token).delete(
            synchronize_session=False
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"success": True, "user": user_to_public(user)}


@router.patch("/profile")
async def update_profile(
    request: Request,
    name: str | None = Form(default=None),
    email: str | None = Form(default=None),
    password: str | None = Form(default=None),
    profileImage: UploadFile | None = File(default=None),
    resume: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if name is not None:
        user.name = validate_string_field(name, "Name", min_length=1, max_length=255)

    if email is not None:
        new_email = validate_email(email)
        if new_email != user.email:
            if db.query(User.id).filter(User.email == new_email, User.id != user.id).first():
                raise ConflictError(get_error_message("email_exists"))
            user.email = new_email

    password_changed = False
    if password:
        validate_password(password)
        user.password = _hash(password)
        password_changed = True

    if has_file(profileImage):
        user.profile_image = await store_upload(profileImage, PROFILE_IMAGE, user.id)
    if has_file(resume):
        user.resume = await store_upload(resume, RESUME, user.id)

    user.updated_at = utcnow()
    try:
        if password_changed:
            # Every other session of this user stops working; the current one stays.
            db.query(UserToken).filter(
                UserToken.user_id == user.id,
                UserToken.token != request.state.auth_token,
            ).delete(synchronize_session=False)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise ConflictError(get_error_message("email_exists"))
    except Exception:
        db.rollback()
        raise

    return {"success": True, "user": user_to_public(user)}


@router.post("/password-reset-request")
def request_password_reset(payload: PasswordResetRequest, db: Session = Depends(get_db)):
    email = validate_email(payload.email)
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError(get_error_message("user_not_found"))

    token = create_password_reset_token(user.id, user.password)

    if smtp_configured():
        try:
            send_password_reset_email(to_email=user.email, name=user.name, token=token)
        except Exception as e:
            logger.warning("Password reset email to %s failed: %s", user.email, e)
    else:
        logger.info("SMTP not configured; password reset email for %s not sent", user.id)

    body = {"success": True, "message": "Password reset email sent"}
    if APP_ENV != "production":
        body["resetToken"] = token
    return body


@router.post("/password-reset")
def reset_password(payload: PasswordResetConfirm, db: Session = Depends(get_db)):
    if not payload.token or not payload.password:
        raise ValidationError("Token and new password are required")
    validate_password(payload.password)

    subject = peek_subject(payload.token)
    if not subject or not OBJECT_ID_PATTERN.match(subject):
        raise AuthenticationError(get_error_message("invalid_reset_token"))

    user = db.query(User).filter(User.id == subject.lower()).first()
    if not user:
        raise NotFoundError(get_error_message("user_not_found"))
    if not verify_password_reset_token(payload.token, user.password):
        raise AuthenticationError(get_error_message("invalid_reset_token"))

    user.password = _hash(payload.password)
    user.updated_at = utcnow()
    try:
        db.query(UserToken).filter(UserToken.user_id == user.id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Password reset for %s", user.id)
    return {"success": True, "message": "Password has been reset successfully"}
