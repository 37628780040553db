"""
User profile management.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from roofrix.db import DbClient, UserRecord
from roofrix.errors import NotFoundError, PermissionDeniedError, ValidationError
from roofrix.storage import StorageClient, build_storage_path, unique_file_name
from roofrix.types import OrderStatus, Role, StorageFolder
from roofrix.validators import validate_image_file

logger = logging.getLogger(__name__)

SELF_EDITABLE_FIELDS = {"display_name", "phone_number", "company"}
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS | {"role", "is_active"}


def _is_admin(user: UserRecord) -> bool:
    return user.role == Role.ADMIN.value


def get_profile_for(db: DbClient, actor: UserRecord, uid: str) -> UserRecord:
    if actor.uid != uid and not _is_admin(actor):
        raise PermissionDeniedError("You can only view your own profile")
    user = db.get_user(uid)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _open_assigned_orders(db: DbClient, designer: UserRecord) -> list[str]:
    open_ids = []
    for order_id in designer.assigned_orders or []:
        order = db.get_order(order_id)
        if (
            order is not None
            and order.assigned_designer_id == designer.uid
            and not OrderStatus(order.status).is_terminal
        ):
            open_ids.append(order_id)
    return open_ids


def update_profile(
    db: DbClient, actor: UserRecord, uid: str, changes: dict
) -> UserRecord:
    """
    Apply profile edits. Users edit their own contact details; role and
    account status are admin-only. ``uid``, ``email`` and ``created_at`` are
    never editable.
    """
    target = get_profile_for(db, actor, uid)
    allowed = ADMIN_EDITABLE_FIELDS if _is_admin(actor) else SELF_EDITABLE_FIELDS
    rejected = sorted(set(changes) - allowed)
    if rejected:
        raise PermissionDeniedError(f"Fields cannot be updated: {', '.join(rejected)}")

    fields: dict = {}
    for key, value in changes.items():
        if key == "role":
            try:
                value = Role(value).value
            except ValueError as exc:
                raise ValidationError(f"Unknown role: {value}") from exc
            if uid == actor.uid and value != target.role:
                raise ValidationError("Admins cannot change their own role")
            if target.role == Role.DESIGNER.value and value != target.role:
                open_orders = _open_assigned_orders(db, target)
                if open_orders:
                    raise ValidationError(
                        f"Designer still has {len(open_orders)} open assigned order(s); "
                        "reassign them before changing the role"
                    )
        elif key == "is_active":
            if uid == actor.uid and not value:
                raise ValidationError("Admins cannot deactivate their own account")
            value = bool(value)
        elif isinstance(value, str):
            value = value.strip()
        fields[key] = value

    if fields.get("role") == Role.DESIGNER.value and target.assigned_orders is None:
        fields["assigned_orders"] = []
    if not fields:
        return target
    updated = db.update_user(uid, fields)
    if updated is None:
        raise NotFoundError("User not found")
    logger.info("Updated profile %s fields %s", uid, sorted(fields))
    return updated


def update_last_login(db: DbClient, uid: str) -> Optional[UserRecord]:
    return db.update_user(uid, {"last_login_at": time.time()})


def list_users(db: DbClient, role: Optional[str] = None) -> list[UserRecord]:
    """All users, or the active users holding ``role``."""
    if role:
        try:
            role = Role(role).value
        except ValueError as exc:
            raise ValidationError(f"Unknown role: {role}") from exc
        return db.list_users(role=role, active_only=True)
    return db.list_users()


def set_active(db: DbClient, actor: UserRecord, uid: str, active: bool) -> UserRecord:
    if not _is_admin(actor):
        raise PermissionDeniedError("Only admins can change account status")
    if uid == actor.uid and not active:
        raise ValidationError("Admins cannot deactivate their own account")
    updated = db.update_user(uid, {"is_active": active})
    if updated is None:
        raise NotFoundError("User not found")
    logger.info("User %s %s by %s", uid, "activated" if active else "deactivated", actor.uid)
    return updated


def assign_order_to_designer(db: DbClient, designer_uid: str, order_id: str) -> UserRecord:
    designer = db.get_user(designer_uid)
    if designer is None:
        raise NotFoundError("Designer not found")
    if designer.role != Role.DESIGNER.value:
        raise ValidationError("User is not a designer")
    if order_id in (designer.assigned_orders or []):
        return designer
    fields = {} if designer.assigned_orders is not None else {"assigned_orders": []}
    return db.update_user(designer_uid, fields, append={"assigned_orders": [order_id]})


def remove_order_from_designer(db: DbClient, designer_uid: str, order_id: str) -> UserRecord:
    designer = db.get_user(designer_uid)
    if designer is None:
        raise NotFoundError("Designer not found")
    if designer.assigned_orders is None:
        return db.update_user(designer_uid, {"assigned_orders": []})
    return db.update_user(designer_uid, remove={"assigned_orders": [order_id]})


def upload_avatar(
    db: DbClient,
    storage: StorageClient,
    actor: UserRecord,
    uid: str,
    filename: str,
    content_type: Optional[str],
    data: bytes,
) -> UserRecord:
    target = get_profile_for(db, actor, uid)
    if not data:
        raise ValidationError("No file provided")
    ok, error = validate_image_file(content_type, len(data))
    if not ok:
        raise ValidationError(error)
    path = build_storage_path(
        StorageFolder.USER_AVATARS, unique_file_name(filename or "avatar"), user_id=uid
    )
    storage.upload_bytes(path, data, content_type or "application/octet-stream")
    if target.photo_path and target.photo_path != path:
        try:
            storage.delete(target.photo_path)
        except FileNotFoundError:
            logger.warning("Previous avatar %s already missing", target.photo_path)
    return db.update_user(uid, {"photo_path": path})
