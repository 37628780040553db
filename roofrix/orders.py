"""
Order lifecycle: creation with a price snapshot, role-scoped reads, status
changes recorded on the order timeline, designer assignment, messages and
order files.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from roofrix import pricing, users
from roofrix.db import DbClient, MessageRecord, OrderRecord, UserRecord
from roofrix.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from roofrix.queue import EventQueue, make_event
from roofrix.storage import StorageClient, build_storage_path, unique_file_name
from roofrix.types import EventType, OrderStatus, Priority, Role, StorageFolder
from roofrix.validators import (
    validate_design_file,
    validate_document_file,
    validate_image_file,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000

# Designers work their assigned orders forward to review; review can bounce
# back to in_progress. Everything else is an admin decision.
DESIGNER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.IN_PROGRESS},
    OrderStatus.IN_PROGRESS: {OrderStatus.REVIEW},
    OrderStatus.REVIEW: {OrderStatus.IN_PROGRESS},
}


@dataclass
class OrderDraft:
    project_address: str
    report_type_id: str
    structure_category: Optional[str] = None
    addon_ids: list[str] = field(default_factory=list)
    project_name: str = ""
    project_description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    structure_type: str = ""
    primary_pitch: str = ""
    secondary_pitch: str = ""
    special_instructions: str = ""
    roof_type: str = ""
    estimated_area: Optional[float] = None
    priority: str = Priority.MEDIUM.value


@dataclass(frozen=True)
class FileKind:
    folder: StorageFolder
    # Order field listing uploaded paths, when the kind has one.
    order_field: Optional[str]
    validate: Callable[[Optional[str], int], tuple[bool, Optional[str]]]
    uploader_check: Callable[[UserRecord, OrderRecord], bool]


def _is_admin(user: UserRecord) -> bool:
    return user.role == Role.ADMIN.value


def _is_owner(user: UserRecord, order: OrderRecord) -> bool:
    return user.role == Role.CUSTOMER.value and order.customer_id == user.uid


def _is_assigned_designer(user: UserRecord, order: OrderRecord) -> bool:
    return user.role == Role.DESIGNER.value and order.assigned_designer_id == user.uid


def _validate_message_attachment(content_type: Optional[str], size: int):
    ok, error = validate_image_file(content_type, size)
    if ok:
        return ok, error
    return validate_document_file(content_type, size)


FILE_KINDS = {
    "site-images": FileKind(
        folder=StorageFolder.SITE_IMAGES,
        order_field="site_images",
        validate=validate_image_file,
        uploader_check=lambda user, order: _is_admin(user) or _is_owner(user, order),
    ),
    "design-files": FileKind(
        folder=StorageFolder.DESIGN_FILES,
        order_field="design_files",
        validate=validate_design_file,
        uploader_check=lambda user, order: _is_admin(user)
        or _is_assigned_designer(user, order),
    ),
    "message-attachments": FileKind(
        folder=StorageFolder.MESSAGE_ATTACHMENTS,
        order_field=None,
        validate=_validate_message_attachment,
        uploader_check=lambda user, order: can_access(user, order),
    ),
}


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown order status: {value}") from exc


def generate_order_number(db: DbClient, now: Optional[float] = None) -> str:
    year = datetime.fromtimestamp(now or time.time(), tz=timezone.utc).year
    return f"ORD-{year}-{db.next_order_sequence(year):04d}"


def timeline_entry(
    status: str,
    actor: UserRecord,
    notes: Optional[str] = None,
    changed_at: Optional[float] = None,
) -> dict:
    return {
        "status": status,
        "changed_by": actor.uid,
        "changed_by_email": actor.email,
        "changed_by_role": actor.role,
        "changed_at": changed_at or time.time(),
        "notes": notes or "",
    }


def create_order(
    db: DbClient, queue: EventQueue, customer: UserRecord, draft: OrderDraft
) -> OrderRecord:
    """
    Create a pending order for ``customer``.

    Prices always come from the catalog; whatever the client showed the
    customer is recomputed here and frozen on the order.
    """
    address = (draft.project_address or "").strip()
    if not address:
        raise ValidationError("Project address is required")
    project_name = (draft.project_name or "").strip()
    if project_name and len(project_name) < 3:
        raise ValidationError("Project name must be at least 3 characters")
    if draft.estimated_area is not None and draft.estimated_area < 0:
        raise ValidationError("Estimated area must be greater than or equal to 0")
    try:
        priority = Priority(draft.priority or Priority.MEDIUM.value)
    except ValueError as exc:
        raise ValidationError(f"Unknown priority: {draft.priority}") from exc

    category_id = draft.structure_category
    if not category_id:
        category_id = (
            pricing.category_for_squares(draft.estimated_area).id
            if draft.estimated_area is not None
            else "basic"
        )
    quote = pricing.quote(db, category_id, draft.report_type_id, draft.addon_ids)

    now = time.time()
    order = OrderRecord(
        order_id=uuid4().hex,
        order_number=generate_order_number(db, now),
        customer_id=customer.uid,
        customer_email=customer.email,
        customer_name=customer.display_name or customer.email or "Customer",
        project_name=project_name or f"{quote.report_type['name']} - {address}",
        project_address=address,
        project_description=draft.project_description or "",
        latitude=draft.latitude,
        longitude=draft.longitude,
        structure_category=quote.category.id,
        structure_category_name=quote.category.name,
        structure_category_sq_range=quote.category.sq_range,
        structure_type=draft.structure_type or "",
        primary_pitch=draft.primary_pitch or "",
        secondary_pitch=draft.secondary_pitch or "",
        special_instructions=draft.special_instructions or "",
        roof_type=draft.roof_type or "",
        estimated_area=draft.estimated_area or 0.0,
        report_type=quote.report_type,
        addons=quote.addons,
        base_price=quote.base_price,
        addons_total=quote.addons_total,
        total_price=quote.total_price,
        priority=priority.value,
        status=OrderStatus.PENDING.value,
        current_status_updated_at=now,
        current_status_updated_by=customer.uid,
        status_timeline=[
            timeline_entry(OrderStatus.PENDING.value, customer, "Order created", now)
        ],
        created_at=now,
        updated_at=now,
    )
    db.create_order(order)
    queue.enqueue(
        make_event(
            EventType.ORDER_CREATED.value,
            order_id=order.order_id,
            actor_id=customer.uid,
        )
    )
    logger.info(
        "Created order %s (%s) for customer %s, total %.2f",
        order.order_number,
        order.order_id,
        customer.uid,
        order.total_price,
    )
    return order


def can_access(user: UserRecord, order: OrderRecord) -> bool:
    return _is_admin(user) or _is_owner(user, order) or _is_assigned_designer(user, order)


def get_order_for(db: DbClient, user: UserRecord, order_id: str) -> OrderRecord:
    """Load an order the user may see; other users' orders look missing."""
    order = db.get_order(order_id)
    if order is None or not can_access(user, order):
        raise NotFoundError("Order not found")
    return order


def matches_search(order: OrderRecord, query: str) -> bool:
    query = query.strip().lower()
    if not query:
        return True
    haystacks = (
        order.order_number,
        order.customer_name,
        order.customer_email,
        order.project_name or "",
        order.project_address,
    )
    return any(query in value.lower() for value in haystacks)


def list_orders_for(
    db: DbClient,
    user: UserRecord,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 100,
) -> list[OrderRecord]:
    """
    Orders visible to ``user``, newest first. ``limit`` caps the result
    after ``search`` is applied.
    """
    if status:
        status = parse_status(status).value
    fetch_limit = None if search else limit
    if _is_admin(user):
        orders = db.list_orders(status=status, limit=fetch_limit)
    elif user.role == Role.DESIGNER.value:
        orders = db.list_orders(designer_id=user.uid, status=status, limit=fetch_limit)
    else:
        orders = db.list_orders(customer_id=user.uid, status=status, limit=fetch_limit)
    if search:
        orders = [order for order in orders if matches_search(order, search)][:limit]
    return orders


def check_transition(user: UserRecord, order: OrderRecord, new_status: OrderStatus) -> None:
    current = OrderStatus(order.status)
    if current == new_status:
        raise InvalidTransitionError(f"Order is already {current.label}")
    if current.is_terminal:
        raise InvalidTransitionError(
            f"Order is {current.label} and can no longer change status"
        )
    if _is_admin(user):
        return
    if _is_assigned_designer(user, order):
        if new_status in DESIGNER_TRANSITIONS.get(current, set()):
            return
        raise InvalidTransitionError(
            f"Designers cannot move an order from {current.label} to {new_status.label}"
        )
    if _is_owner(user, order):
        if current == OrderStatus.PENDING and new_status == OrderStatus.CANCELLED:
            return
        raise PermissionDeniedError("Customers can only cancel pending orders")
    raise PermissionDeniedError("You do not have permission to update this order")


def update_status(
    db: DbClient,
    queue: EventQueue,
    user: UserRecord,
    order_id: str,
    new_status: str,
    notes: Optional[str] = None,
) -> OrderRecord:
    """
    Change an order's status and append the transition to its timeline in a
    single update.
    """
    order = get_order_for(db, user, order_id)
    target = parse_status(new_status)
    check_transition(user, order, target)

    now = time.time()
    fields = {
        "status": target.value,
        "current_status_updated_at": now,
        "current_status_updated_by": user.uid,
    }
    if target == OrderStatus.COMPLETED:
        fields["completed_at"] = now
    previous = {"status": order.status}

    def recheck(current: OrderRecord) -> None:
        # The order may have moved on since it was read above.
        check_transition(user, current, target)
        previous["status"] = current.status

    updated = db.update_order(
        order_id,
        fields,
        append={"status_timeline": [timeline_entry(target.value, user, notes, now)]},
        check=recheck,
    )
    if updated is None:
        raise NotFoundError("Order not found")

    queue.enqueue(
        make_event(
            EventType.STATUS_CHANGED.value,
            order_id=order_id,
            actor_id=user.uid,
            old_status=previous["status"],
            new_status=target.value,
        )
    )
    logger.info(
        "Order %s status %s -> %s by %s",
        order_id,
        previous["status"],
        target.value,
        user.uid,
    )
    return updated


def assign_designer(
    db: DbClient,
    queue: EventQueue,
    admin: UserRecord,
    order_id: str,
    designer_id: str,
) -> OrderRecord:
    if not _is_admin(admin):
        raise PermissionDeniedError("Only admins can assign designers")
    order = get_order_for(db, admin, order_id)
    designer = db.get_user(designer_id)
    if designer is None:
        raise NotFoundError("Designer not found")
    if designer.role != Role.DESIGNER.value:
        raise ValidationError("User is not a designer")
    if not designer.is_active:
        raise ValidationError("Designer account is deactivated")
    previous = {"designer_id": order.assigned_designer_id}

    def still_assignable(current: OrderRecord) -> bool:
        status = OrderStatus(current.status)
        if status.is_terminal:
            raise InvalidTransitionError(
                f"Cannot assign a designer to a {status.label} order"
            )
        previous["designer_id"] = current.assigned_designer_id
        return current.assigned_designer_id != designer.uid

    still_assignable(order)
    if order.assigned_designer_id == designer.uid:
        return order

    updated = db.update_order(
        order_id,
        {
            "assigned_designer_id": designer.uid,
            "assigned_designer_email": designer.email,
        },
        append={
            "status_timeline": [
                timeline_entry(order.status, admin, f"Assigned to {designer.email}")
            ]
        },
        check=still_assignable,
    )
    if updated is None:
        raise NotFoundError("Order not found")
    previous_designer_id = previous["designer_id"]
    if previous_designer_id == designer.uid:
        return updated
    users.assign_order_to_designer(db, designer.uid, order_id)
    if previous_designer_id:
        users.remove_order_from_designer(db, previous_designer_id, order_id)

    queue.enqueue(
        make_event(
            EventType.DESIGNER_ASSIGNED.value,
            order_id=order_id,
            actor_id=admin.uid,
            designer_id=designer.uid,
            previous_designer_id=previous_designer_id,
        )
    )
    logger.info("Order %s assigned to designer %s", order_id, designer.uid)
    return updated


def status_history(db: DbClient, user: UserRecord, order_id: str) -> list[dict]:
    """Timeline entries, newest first."""
    order = get_order_for(db, user, order_id)
    return list(reversed(order.status_timeline))


def post_message(
    db: DbClient,
    queue: EventQueue,
    user: UserRecord,
    order_id: str,
    text: str,
    attachments: Optional[list[str]] = None,
) -> MessageRecord:
    get_order_for(db, user, order_id)
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")
    prefix = f"orders/{order_id}/messages/"
    for path in attachments or []:
        if not path.startswith(prefix):
            raise ValidationError(f"Attachment does not belong to this order: {path}")

    message = MessageRecord(
        message_id=uuid4().hex,
        order_id=order_id,
        sender_id=user.uid,
        sender_email=user.email,
        sender_role=user.role,
        message=text,
        attachments=list(attachments or []),
        is_read=False,
        # The sender has already read their own message.
        read_by=[user.uid],
    )
    db.add_message(message)
    queue.enqueue(
        make_event(
            EventType.MESSAGE_POSTED.value,
            order_id=order_id,
            actor_id=user.uid,
            message_id=message.message_id,
        )
    )
    return message


def list_messages(db: DbClient, user: UserRecord, order_id: str) -> list[MessageRecord]:
    get_order_for(db, user, order_id)
    return db.list_messages(order_id)


def mark_message_read(
    db: DbClient, user: UserRecord, order_id: str, message_id: str
) -> MessageRecord:
    get_order_for(db, user, order_id)
    message = db.mark_message_read(order_id, message_id, user.uid)
    if message is None:
        raise NotFoundError("Message not found")
    return message


def _file_kind(kind: str) -> FileKind:
    try:
        return FILE_KINDS[kind]
    except KeyError as exc:
        raise ValidationError(f"Unknown file kind: {kind}") from exc


def upload_order_file(
    db: DbClient,
    storage: StorageClient,
    user: UserRecord,
    order_id: str,
    kind: str,
    filename: str,
    content_type: Optional[str],
    data: bytes,
) -> str:
    """Validate and store an order file; returns the storage path."""
    file_kind = _file_kind(kind)
    order = get_order_for(db, user, order_id)
    if not file_kind.uploader_check(user, order):
        raise PermissionDeniedError(f"You cannot upload {kind} for this order")
    if not data:
        raise ValidationError("No file provided")
    ok, error = file_kind.validate(content_type, len(data))
    if not ok:
        raise ValidationError(error)

    path = build_storage_path(
        file_kind.folder, unique_file_name(filename or "upload"), order_id=order_id
    )
    storage.upload_bytes(path, data, content_type or "application/octet-stream")
    if file_kind.order_field:
        db.update_order(order_id, append={file_kind.order_field: [path]})
    logger.info("Stored %s file %s for order %s", kind, path, order_id)
    return path


def list_order_files(
    db: DbClient,
    storage: StorageClient,
    user: UserRecord,
    order_id: str,
    kind: str,
    expires_in: int = 3600,
) -> list[dict]:
    file_kind = _file_kind(kind)
    order = get_order_for(db, user, order_id)
    if file_kind.order_field:
        paths = list(getattr(order, file_kind.order_field))
    else:
        paths = storage.list_prefix(
            build_storage_path(file_kind.folder, "", order_id=order_id)
        )
    return [
        {"path": path, "url": storage.presign_get(path, expires_in=expires_in)}
        for path in paths
    ]


def delete_order_file(
    db: DbClient,
    storage: StorageClient,
    user: UserRecord,
    order_id: str,
    kind: str,
    path: str,
) -> None:
    file_kind = _file_kind(kind)
    order = get_order_for(db, user, order_id)
    if not file_kind.uploader_check(user, order):
        raise PermissionDeniedError(f"You cannot delete {kind} for this order")
    prefix = build_storage_path(file_kind.folder, "", order_id=order_id)
    if not path.startswith(prefix):
        raise NotFoundError("File not found")
    if file_kind.order_field and path not in getattr(order, file_kind.order_field):
        raise NotFoundError("File not found")
    try:
        storage.delete(path)
    except FileNotFoundError:
        logger.warning("File %s already missing from storage", path)
    if file_kind.order_field:
        db.update_order(order_id, remove={file_kind.order_field: [path]})
    logger.info("Deleted %s file %s from order %s", kind, path, order_id)
