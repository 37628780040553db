"""
Worker loop that turns order events into user notifications.

Each event names an order (or a contact submission); the worker works out
who should hear about it and writes one notification per recipient.
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from uuid import uuid4

from roofrix.db import DbClient, NotificationRecord, OrderRecord
from roofrix.dependencies import get_db_client, get_queue_client
from roofrix.queue import EventQueue
from roofrix.types import EventType, OrderStatus, Role

logger = logging.getLogger(__name__)


def _admin_ids(db: DbClient) -> list[str]:
    return [user.uid for user in db.list_users(role=Role.ADMIN.value, active_only=True)]


def _unique(ids: list[Optional[str]], exclude: Optional[str] = None) -> list[str]:
    seen: list[str] = []
    for uid in ids:
        if uid and uid != exclude and uid not in seen:
            seen.append(uid)
    return seen


def _status_label(value: Optional[str]) -> str:
    try:
        return OrderStatus(value).label
    except ValueError:
        return str(value)


def plan_notifications(db: DbClient, event: dict) -> list[NotificationRecord]:
    """Build the notifications for one event without storing them."""
    event_type = event.get("type")
    actor_id = event.get("actor_id")

    if event_type == EventType.CONTACT_SUBMITTED.value:
        title = f"New contact message from {event.get('name', 'a visitor')}"
        return [
            NotificationRecord(
                notification_id=uuid4().hex,
                uid=uid,
                kind=event_type,
                title=title,
                body=event.get("email", ""),
            )
            for uid in _admin_ids(db)
        ]

    order_id = event.get("order_id")
    order: Optional[OrderRecord] = db.get_order(order_id) if order_id else None
    if order is None:
        logger.warning("Event %s references missing order %s", event_type, order_id)
        return []

    if event_type == EventType.ORDER_CREATED.value:
        recipients = _unique(_admin_ids(db), exclude=actor_id)
        title = f"New order {order.order_number}"
        body = f"{order.customer_name} ordered {order.report_type.get('name', 'a report')}"
    elif event_type == EventType.STATUS_CHANGED.value:
        recipients = _unique(
            [order.customer_id, order.assigned_designer_id], exclude=actor_id
        )
        title = f"Order {order.order_number} is now {_status_label(event.get('new_status'))}"
        body = f"Previously {_status_label(event.get('old_status'))}"
    elif event_type == EventType.DESIGNER_ASSIGNED.value:
        recipients = _unique(
            [event.get("designer_id"), order.customer_id], exclude=actor_id
        )
        title = f"Designer assigned to order {order.order_number}"
        body = order.assigned_designer_email or ""
    elif event_type == EventType.MESSAGE_POSTED.value:
        recipients = _unique(
            [order.customer_id, order.assigned_designer_id] + _admin_ids(db),
            exclude=actor_id,
        )
        title = f"New message on order {order.order_number}"
        body = ""
    else:
        logger.warning("Ignoring unknown event type %r", event_type)
        return []

    return [
        NotificationRecord(
            notification_id=uuid4().hex,
            uid=uid,
            kind=event_type,
            title=title,
            body=body,
            order_id=order.order_id,
        )
        for uid in recipients
    ]


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[EventQueue] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Process a single event from the queue. Returns True if an event was
    processed.
    """
    if db is None:
        db = get_db_client()
    if queue is None:
        queue = get_queue_client()

    event = queue.dequeue(block=block, timeout=timeout)
    if not event:
        return False

    notifications = plan_notifications(db, event)
    for notification in notifications:
        db.add_notification(notification)
    logger.info(
        "Event %s for order %s -> %d notifications",
        event.get("type"),
        event.get("order_id"),
        len(notifications),
    )
    return True


def run_loop(
    poll_interval_seconds: int = 2,
    *,
    once: bool = False,
    db: Optional[DbClient] = None,
    queue: Optional[EventQueue] = None,
) -> None:
    """
    Block on the event queue forever. Intended to be run under systemd/supervisor.

    With ``once`` the queue is drained without blocking and the loop returns.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()
    logger.info("Notification worker started")
    while True:
        try:
            processed = process_next(
                db=db, queue=queue, block=not once, timeout=poll_interval_seconds
            )
        except Exception:
            logger.exception("Failed to process event")
            processed = False
        if once and not processed:
            return
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_loop()
