"""
Account sign-up/sign-in and request authentication.

Passwords are stored as salted PBKDF2-SHA256 digests; sign-in hands out an
opaque bearer token backed by a session row that sign-out revokes.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from roofrix import users
from roofrix.db import DbClient, SessionRecord, UserRecord
from roofrix.dependencies import get_db_client
from roofrix.errors import (
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
    ValidationError,
)
from roofrix.types import Role
from roofrix.validators import auth_error_message, validate_email, validate_password

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 310_000
SESSION_INVALID_MESSAGE = "Session expired or invalid. Please sign in again."

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthSession:
    token: str
    expires_at: float
    user: UserRecord


def hash_password(password: str, salt_hex: Optional[str] = None) -> tuple[str, str]:
    """Return ``(digest_hex, salt_hex)`` for the password."""
    salt = bytes.fromhex(salt_hex) if salt_hex else secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS
    )
    return digest.hex(), salt.hex()


def verify_password(password: str, salt_hex: str, expected_hex: str) -> bool:
    if not salt_hex or not expected_hex:
        return False
    computed, _ = hash_password(password, salt_hex)
    return hmac.compare_digest(computed, expected_hex)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user_account(
    db: DbClient,
    *,
    email: str,
    password: str,
    role: Role = Role.CUSTOMER,
    display_name: str = "",
    phone_number: str = "",
    company: str = "",
) -> UserRecord:
    email = normalize_email(email)
    if not validate_email(email):
        raise ValidationError(auth_error_message("auth/invalid-email"))
    password_check = validate_password(password)
    if not password_check.valid:
        raise ValidationError(password_check.errors[0])
    if db.get_user_by_email(email):
        raise ConflictError(auth_error_message("auth/email-already-in-use"))

    role = Role(role)
    password_hash, password_salt = hash_password(password)
    now = time.time()
    user = UserRecord(
        uid=uuid4().hex,
        email=email,
        role=role.value,
        display_name=display_name or "",
        phone_number=phone_number or "",
        company=company or "",
        assigned_orders=[] if role == Role.DESIGNER else None,
        password_hash=password_hash,
        password_salt=password_salt,
        created_at=now,
        updated_at=now,
        last_login_at=now,
    )
    db.create_user(user)
    logger.info("Created %s account %s", role.value, user.uid)
    return user


def start_session(db: DbClient, user: UserRecord, ttl_seconds: int) -> AuthSession:
    now = time.time()
    record = SessionRecord(
        token=secrets.token_urlsafe(32),
        uid=user.uid,
        expires_at=now + ttl_seconds,
        created_at=now,
    )
    db.create_session(record)
    return AuthSession(token=record.token, expires_at=record.expires_at, user=user)


def sign_up(
    db: DbClient,
    email: str,
    password: str,
    ttl_seconds: int,
    display_name: str = "",
) -> AuthSession:
    """New sign-ups always get the customer role."""
    user = create_user_account(
        db,
        email=email,
        password=password,
        role=Role.CUSTOMER,
        display_name=display_name,
    )
    return start_session(db, user, ttl_seconds)


def sign_in(db: DbClient, email: str, password: str, ttl_seconds: int) -> AuthSession:
    user = db.get_user_by_email(normalize_email(email))
    if not user or not verify_password(password or "", user.password_salt, user.password_hash):
        raise AuthenticationError(auth_error_message("auth/invalid-credential"))
    if not user.is_active:
        raise PermissionDeniedError(auth_error_message("auth/user-disabled"))
    user = users.update_last_login(db, user.uid) or user
    return start_session(db, user, ttl_seconds)


def sign_out(db: DbClient, token: str) -> None:
    db.revoke_session(token)


def resolve_session(db: DbClient, token: str) -> UserRecord:
    session = db.get_session(token)
    if not session or not session.is_valid():
        raise AuthenticationError(SESSION_INVALID_MESSAGE)
    user = db.get_user(session.uid)
    if not user:
        raise AuthenticationError(SESSION_INVALID_MESSAGE)
    if not user.is_active:
        raise PermissionDeniedError(auth_error_message("auth/user-disabled"))
    return user


def get_session_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_session_token),
    db: DbClient = Depends(get_db_client),
) -> UserRecord:
    return resolve_session(db, token)


def require_roles(*roles: Role):
    """Build a dependency that only lets the given roles through."""
    allowed = {Role(role).value for role in roles}

    def dependency(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if user.role not in allowed:
            logger.warning(
                "User %s with role %r denied; requires one of %s",
                user.uid,
                user.role,
                sorted(allowed),
            )
            raise PermissionDeniedError("You do not have permission to perform this action.")
        return user

    return dependency
