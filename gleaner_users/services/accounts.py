"""Signup, login/logout, token revocation and password reset."""

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from gleaner_users.acl import AclStore
from gleaner_users.core.errors import (
    ForbiddenError,
    TooManyAttemptsError,
    UnauthorizedError,
    ValidationError,
)
from gleaner_users.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from gleaner_users.models import LoginAttempt, RevokedToken, User
from gleaner_users.schemas.auth import LoggedInUser, SignupRequest
from gleaner_users.services.applications import resolve_autoroles
from gleaner_users.services.mailer import MailDeliveryError, send_mail
from gleaner_users.services.users import create_user, find_user, user_to_out

if TYPE_CHECKING:
    from gleaner_users.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password."
INVALID_RESET_TOKEN = "The password reset token is invalid or has expired."


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def signup(db: Session, acl: AclStore, body: SignupRequest) -> User:
    roles = resolve_autoroles(db, acl, body.prefix)
    return create_user(
        db,
        acl,
        body.username,
        body.email,
        body.password,
        first=body.first,
        middle=body.middle,
        last=body.last,
        roles=roles,
    )


def _failed_attempts(db: Session, ip: str, identifier: str, settings: "Settings") -> int:
    cutoff = datetime.now(UTC) - timedelta(minutes=settings.LOGIN_ATTEMPT_WINDOW_MINUTES)
    return (
        db.query(LoginAttempt)
        .filter(
            LoginAttempt.ip == ip,
            LoginAttempt.username == identifier,
            LoginAttempt.time >= cutoff,
        )
        .count()
    )


def _record_failure(db: Session, ip: str, identifier: str) -> None:
    db.add(LoginAttempt(ip=ip, username=identifier))
    db.commit()
    logger.warning("Failed login for %s from %s", identifier, ip or "unknown")


def login(
    db: Session,
    acl: AclStore,
    identifier: str,
    password: str,
    ip: str,
    settings: "Settings",
) -> LoggedInUser:
    """
    Verify credentials and issue a bearer token.

    Raises TooManyAttemptsError once the failure budget for this IP and
    identifier is spent, UnauthorizedError on bad credentials and
    ForbiddenError for unverified accounts when verification is required.
    """
    if _failed_attempts(db, ip, identifier, settings) >= settings.LOGIN_MAX_FAILED_ATTEMPTS:
        logger.warning("Login throttled for %s from %s", identifier, ip or "unknown")
        raise TooManyAttemptsError("You've reached the maximum number of login attempts. Try again later.")

    user = find_user(db, identifier)
    if user is None or not verify_password(password, user.password_hash):
        _record_failure(db, ip, identifier)
        raise UnauthorizedError(INVALID_CREDENTIALS)
    if settings.REQUIRE_ACCOUNT_VERIFICATION and not user.verified:
        raise ForbiddenError("The account has not been verified yet.")

    db.query(LoginAttempt).filter(
        LoginAttempt.ip == ip, LoginAttempt.username == identifier
    ).delete(synchronize_session=False)
    db.commit()

    token = create_access_token(sub=user.id, username=user.username)
    out = user_to_out(user, acl.user_roles(user.username))
    logger.info("User %s logged in", user.username)
    return LoggedInUser(**out.model_dump(), token=token)


def logout(db: Session, jti: str, exp: int) -> None:
    """Revoke the token until it would have expired anyway."""
    if is_token_revoked(db, jti):
        return
    db.add(RevokedToken(jti=jti, expires_at=datetime.fromtimestamp(exp, UTC)))
    db.commit()


def is_token_revoked(db: Session, jti: str) -> bool:
    return db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first() is not None


def request_password_reset(db: Session, email: str, settings: "Settings") -> None:
    """
    Store a one-time reset token for the account and mail the link.
    Unknown addresses are ignored so the response never reveals which exist.
    """
    user = find_user(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return
    token = generate_reset_token()
    user.reset_password_hash = hash_password(token)
    user.reset_password_expires = datetime.now(UTC) + timedelta(
        minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    db.commit()
    link = f"{settings.PUBLIC_BASE_URL}/login/reset/{token}"
    body = (
        f"Hi {user.username},\n\n"
        "We received a request to reset your password. Use the link below to choose a new one:\n\n"
        f"{link}\n\n"
        f"The link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
        "If you did not ask for this, ignore this email.\n"
    )
    try:
        send_mail(settings, user.email, "Reset your password", body)
    except MailDeliveryError as e:
        logger.error("Password reset mail failed for user=%s: %s", user.username, e.message)
        raise


def reset_password(db: Session, token: str, email: str, password: str) -> User:
    user = find_user(db, email)
    if (
        user is None
        or not user.reset_password_hash
        or user.reset_password_expires is None
        or _utc(user.reset_password_expires) < datetime.now(UTC)
        or not verify_password(token, user.reset_password_hash)
    ):
        raise ValidationError(INVALID_RESET_TOKEN)
    user.password_hash = hash_password(password)
    user.reset_password_hash = None
    user.reset_password_expires = None
    db.commit()
    logger.info("Password reset for user=%s", user.username)
    return user


def purge_expired(db: Session, settings: "Settings") -> tuple[int, int]:
    """Delete revoked tokens past expiry and login attempts outside the window."""
    now = datetime.now(UTC)
    tokens = (
        db.query(RevokedToken)
        .filter(RevokedToken.expires_at < now)
        .delete(synchronize_session=False)
    )
    cutoff = now - timedelta(minutes=settings.LOGIN_ATTEMPT_WINDOW_MINUTES)
    attempts = (
        db.query(LoginAttempt)
        .filter(LoginAttempt.time < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return tokens, attempts
