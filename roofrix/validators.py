"""
Input validation helpers shared by the auth, users and order routes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal, Optional

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

IMAGE_TYPES = ["image/jpeg", "image/png", "image/jpg", "image/webp"]
DOCUMENT_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]
DESIGN_TYPES = [
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/jpg",
    "application/dwg",
    "application/dxf",
    "application/zip",
]

AUTH_ERROR_MESSAGES = {
    "auth/email-already-in-use": "This email is already registered. Please sign in instead.",
    "auth/invalid-email": "Please enter a valid email address.",
    "auth/weak-password": (
        "Password should be at least 8 characters long with uppercase, "
        "lowercase, and numbers."
    ),
    "auth/user-disabled": "This account has been disabled. Please contact support.",
    "auth/user-not-found": "No account found with this email. Please sign up first.",
    "auth/wrong-password": "Incorrect password. Please try again.",
    "auth/invalid-credential": "Invalid email or password. Please check your credentials.",
    "auth/too-many-requests": "Too many failed attempts. Please try again later.",
}
DEFAULT_AUTH_ERROR = "An error occurred. Please try again."


@dataclass
class PasswordValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    strength: Literal["weak", "medium", "strong"] = "weak"


def validate_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_password(password: Optional[str]) -> PasswordValidation:
    """
    Check password rules: at least 8 characters with an uppercase letter,
    a lowercase letter and a digit.
    """
    if not password:
        return PasswordValidation(valid=False, errors=["Password is required"])

    errors: list[str] = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")

    strength: Literal["weak", "medium", "strong"] = "weak"
    if not errors:
        if len(password) >= 12 and SPECIAL_CHARACTERS.search(password):
            strength = "strong"
        else:
            strength = "medium"
    return PasswordValidation(valid=not errors, errors=errors, strength=strength)


def auth_error_message(code: str) -> str:
    return AUTH_ERROR_MESSAGES.get(code, DEFAULT_AUTH_ERROR)


def _type_allowed(content_type: str, allowed_types: list[str]) -> bool:
    for allowed in allowed_types:
        if allowed.endswith("/*"):
            prefix = allowed.split("/")[0]
            if content_type.startswith(prefix + "/"):
                return True
        elif content_type == allowed:
            return True
    return False


def validate_file(
    content_type: Optional[str],
    size: int,
    allowed_types: list[str],
    max_size_mb: int,
) -> tuple[bool, Optional[str]]:
    if not _type_allowed(content_type or "", allowed_types):
        return False, f"Invalid file type. Allowed types: {', '.join(allowed_types)}"
    if size > max_size_mb * 1024 * 1024:
        return False, f"File size exceeds {max_size_mb}MB limit"
    return True, None


def validate_image_file(content_type: Optional[str], size: int) -> tuple[bool, Optional[str]]:
    return validate_file(content_type, size, IMAGE_TYPES, 10)


def validate_document_file(content_type: Optional[str], size: int) -> tuple[bool, Optional[str]]:
    return validate_file(content_type, size, DOCUMENT_TYPES, 20)


def validate_design_file(content_type: Optional[str], size: int) -> tuple[bool, Optional[str]]:
    return validate_file(content_type, size, DESIGN_TYPES, 50)
