"""
Database abstraction for SQL backends and an in-memory test implementation.

Profiles, orders, messages and notifications are stored as JSON documents
next to the handful of columns we filter on, so the SQL client behaves like
the document store the portal started out on.
"""

from __future__ import annotations

import copy
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, Optional, Protocol, Type, TypeVar

from dacite import Config, from_dict
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

T = TypeVar("T")


def _from_document(cls: Type[T], document: dict) -> T:
    return from_dict(data_class=cls, data=document, config=Config(check_types=False))


@dataclass
class UserRecord:
    uid: str
    email: str
    role: str
    display_name: str = ""
    phone_number: str = ""
    company: str = ""
    photo_path: str = ""
    is_active: bool = True
    # Only designers carry a list of assigned order ids.
    assigned_orders: Optional[list[str]] = None
    password_hash: str = ""
    password_salt: str = ""
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())
    last_login_at: Optional[float] = None

    def as_dict(self) -> dict:
        data = asdict(self)
        data.pop("password_hash")
        data.pop("password_salt")
        return data


@dataclass
class SessionRecord:
    token: str
    uid: str
    expires_at: float
    created_at: float = field(default_factory=lambda: time.time())
    revoked_at: Optional[float] = None

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = now if now is not None else time.time()
        return self.revoked_at is None and self.expires_at > now


@dataclass
class CatalogItemRecord:
    kind: str
    item_id: str
    name: str
    # Empty for items shared by every structure category.
    category: str = ""
    description: str = ""
    price: float = 0.0
    badge: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class OrderRecord:
    order_id: str
    order_number: str
    customer_id: str
    customer_email: str
    customer_name: str
    project_name: str
    project_address: str
    status: str
    current_status_updated_by: str
    project_description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    structure_category: str = "basic"
    structure_category_name: str = ""
    structure_category_sq_range: str = ""
    structure_type: str = ""
    primary_pitch: str = ""
    secondary_pitch: str = ""
    special_instructions: str = ""
    roof_type: str = ""
    estimated_area: float = 0.0
    report_type: dict = field(default_factory=dict)
    addons: list[dict] = field(default_factory=list)
    base_price: float = 0.0
    addons_total: float = 0.0
    total_price: float = 0.0
    priority: str = "medium"
    assigned_designer_id: Optional[str] = None
    assigned_designer_email: Optional[str] = None
    site_images: list[str] = field(default_factory=list)
    design_files: list[str] = field(default_factory=list)
    status_timeline: list[dict] = field(default_factory=list)
    current_status_updated_at: float = field(default_factory=lambda: time.time())
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())
    completed_at: Optional[float] = None

    def as_dict(self) -> dict:
        return asdict(self)


# Runs against the current stored order before an update is applied. It may
# raise to abort the update, or return False to leave the order untouched.
OrderCheck = Callable[[OrderRecord], Optional[bool]]


@dataclass
class MessageRecord:
    message_id: str
    order_id: str
    sender_id: str
    sender_email: str
    sender_role: str
    message: str
    attachments: list[str] = field(default_factory=list)
    is_read: bool = False
    read_by: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ContactRecord:
    contact_id: str
    name: str
    email: str
    message: str
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class NotificationRecord:
    notification_id: str
    uid: str
    kind: str
    title: str
    body: str = ""
    order_id: Optional[str] = None
    is_read: bool = False
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return asdict(self)


def apply_changes(
    document: dict,
    fields: Optional[dict] = None,
    append: Optional[dict] = None,
    remove: Optional[dict] = None,
) -> dict:
    """
    Return a copy of ``document`` with field updates applied.

    ``append`` adds items to list fields, skipping items already present;
    ``remove`` drops matching items. ``updated_at`` is always refreshed.
    """
    updated = copy.deepcopy(document)
    for key in list(fields or {}) + list(append or {}) + list(remove or {}):
        if key not in updated:
            raise ValueError(f"Unknown field: {key}")
    for key, value in (fields or {}).items():
        updated[key] = value
    for key, items in (append or {}).items():
        current = list(updated.get(key) or [])
        for item in items:
            if item not in current:
                current.append(item)
        updated[key] = current
    for key, items in (remove or {}).items():
        updated[key] = [item for item in (updated.get(key) or []) if item not in items]
    updated["updated_at"] = time.time()
    return updated


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, user: UserRecord) -> None:
        ...

    def get_user(self, uid: str) -> Optional[UserRecord]:
        ...

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def update_user(
        self,
        uid: str,
        fields: Optional[dict] = None,
        *,
        append: Optional[dict] = None,
        remove: Optional[dict] = None,
    ) -> Optional[UserRecord]:
        ...

    def list_users(
        self, role: Optional[str] = None, active_only: bool = False
    ) -> list[UserRecord]:
        ...

    def create_session(self, session: SessionRecord) -> None:
        ...

    def get_session(self, token: str) -> Optional[SessionRecord]:
        ...

    def revoke_session(self, token: str) -> None:
        ...

    def upsert_catalog_item(self, item: CatalogItemRecord) -> None:
        ...

    def get_catalog_item(
        self, kind: str, item_id: str, category: str = ""
    ) -> Optional[CatalogItemRecord]:
        ...

    def list_catalog_items(
        self, kind: str, category: Optional[str] = None, active_only: bool = True
    ) -> list[CatalogItemRecord]:
        ...

    def next_order_sequence(self, year: int) -> int:
        ...

    def create_order(self, order: OrderRecord) -> None:
        ...

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        ...

    def update_order(
        self,
        order_id: str,
        fields: Optional[dict] = None,
        *,
        append: Optional[dict] = None,
        remove: Optional[dict] = None,
        check: Optional[OrderCheck] = None,
    ) -> Optional[OrderRecord]:
        """
        Apply field changes to an order and return the stored result.

        ``check`` sees the order as stored at update time, under the same
        lock as the write.
        """
        ...

    def list_orders(
        self,
        *,
        customer_id: Optional[str] = None,
        designer_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = 100,
    ) -> list[OrderRecord]:
        ...

    def add_message(self, message: MessageRecord) -> None:
        ...

    def get_message(self, order_id: str, message_id: str) -> Optional[MessageRecord]:
        ...

    def list_messages(self, order_id: str) -> list[MessageRecord]:
        ...

    def mark_message_read(
        self, order_id: str, message_id: str, uid: str
    ) -> Optional[MessageRecord]:
        ...

    def save_contact(self, contact: ContactRecord) -> None:
        ...

    def add_notification(self, notification: NotificationRecord) -> None:
        ...

    def list_notifications(
        self, uid: str, unread_only: bool = False, limit: int = 100
    ) -> list[NotificationRecord]:
        ...

    def mark_notification_read(self, uid: str, notification_id: str) -> bool:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.sessions: Dict[str, SessionRecord] = {}
        self.catalog: Dict[tuple[str, str, str], dict] = {}
        self.counters: Dict[int, int] = {}
        self.orders: Dict[str, dict] = {}
        self.messages: Dict[str, dict] = {}
        self.contacts: Dict[str, ContactRecord] = {}
        self.notifications: Dict[str, dict] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.sessions.clear()
        self.catalog.clear()
        self.counters.clear()
        self.orders.clear()
        self.messages.clear()
        self.contacts.clear()
        self.notifications.clear()

    def create_user(self, user: UserRecord) -> None:
        if self.get_user_by_email(user.email):
            raise ValueError(f"Duplicate email: {user.email}")
        self.users[user.uid] = asdict(user)

    def get_user(self, uid: str) -> Optional[UserRecord]:
        doc = self.users.get(uid)
        return _from_document(UserRecord, doc) if doc else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for doc in self.users.values():
            if doc["email"] == email:
                return _from_document(UserRecord, doc)
        return None

    def update_user(
        self,
        uid: str,
        fields: Optional[dict] = None,
        *,
        append: Optional[dict] = None,
        remove: Optional[dict] = None,
    ) -> Optional[UserRecord]:
        doc = self.users.get(uid)
        if doc is None:
            return None
        self.users[uid] = apply_changes(doc, fields, append, remove)
        return _from_document(UserRecord, self.users[uid])

    def list_users(
        self, role: Optional[str] = None, active_only: bool = False
    ) -> list[UserRecord]:
        users = [_from_document(UserRecord, doc) for doc in self.users.values()]
        if role:
            users = [user for user in users if user.role == role]
        if active_only:
            users = [user for user in users if user.is_active]
        return sorted(users, key=lambda user: user.created_at)

    def create_session(self, session: SessionRecord) -> None:
        self.sessions[session.token] = session

    def get_session(self, token: str) -> Optional[SessionRecord]:
        return self.sessions.get(token)

    def revoke_session(self, token: str) -> None:
        session = self.sessions.get(token)
        if session and session.revoked_at is None:
            session.revoked_at = time.time()

    def upsert_catalog_item(self, item: CatalogItemRecord) -> None:
        key = (item.kind, item.category, item.item_id)
        existing = self.catalog.get(key)
        doc = asdict(item)
        if existing:
            doc["created_at"] = existing["created_at"]
        self.catalog[key] = doc

    def get_catalog_item(
        self, kind: str, item_id: str, category: str = ""
    ) -> Optional[CatalogItemRecord]:
        doc = self.catalog.get((kind, category, item_id))
        return _from_document(CatalogItemRecord, doc) if doc else None

    def list_catalog_items(
        self, kind: str, category: Optional[str] = None, active_only: bool = True
    ) -> list[CatalogItemRecord]:
        items = []
        for (item_kind, item_category, _), doc in self.catalog.items():
            if item_kind != kind:
                continue
            if category is not None and item_category != category:
                continue
            if active_only and not doc["is_active"]:
                continue
            items.append(_from_document(CatalogItemRecord, doc))
        return sorted(items, key=lambda item: (item.sort_order, item.item_id))

    def next_order_sequence(self, year: int) -> int:
        self.counters[year] = self.counters.get(year, 0) + 1
        return self.counters[year]

    def create_order(self, order: OrderRecord) -> None:
        self.orders[order.order_id] = asdict(order)

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        doc = self.orders.get(order_id)
        return _from_document(OrderRecord, doc) if doc else None

    def update_order(
        self,
        order_id: str,
        fields: Optional[dict] = None,
        *,
        append: Optional[dict] = None,
        remove: Optional[dict] = None,
        check: Optional[OrderCheck] = None,
    ) -> Optional[OrderRecord]:
        doc = self.orders.get(order_id)
        if doc is None:
            return None
        if check is not None and check(_from_document(OrderRecord, doc)) is False:
            return _from_document(OrderRecord, doc)
        self.orders[order_id] = apply_changes(doc, fields, append, remove)
        return _from_document(OrderRecord, self.orders[order_id])

    def list_orders(
        self,
        *,
        customer_id: Optional[str] = None,
        designer_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = 100,
    ) -> list[OrderRecord]:
        docs = list(self.orders.values())
        if customer_id:
            docs = [doc for doc in docs if doc["customer_id"] == customer_id]
        if designer_id:
            docs = [doc for doc in docs if doc["assigned_designer_id"] == designer_id]
        if status:
            docs = [doc for doc in docs if doc["status"] == status]
        docs.sort(key=lambda doc: doc["created_at"], reverse=True)
        return [_from_document(OrderRecord, doc) for doc in docs[:limit]]

    def add_message(self, message: MessageRecord) -> None:
        self.messages[message.message_id] = asdict(message)

    def get_message(self, order_id: str, message_id: str) -> Optional[MessageRecord]:
        doc = self.messages.get(message_id)
        if not doc or doc["order_id"] != order_id:
            return None
        return _from_document(MessageRecord, doc)

    def list_messages(self, order_id: str) -> list[MessageRecord]:
        docs = [doc for doc in self.messages.values() if doc["order_id"] == order_id]
        docs.sort(key=lambda doc: doc["created_at"])
        return [_from_document(MessageRecord, doc) for doc in docs]

    def mark_message_read(
        self, order_id: str, message_id: str, uid: str
    ) -> Optional[MessageRecord]:
        doc = self.messages.get(message_id)
        if not doc or doc["order_id"] != order_id:
            return None
        if uid not in doc["read_by"]:
            doc["read_by"] = doc["read_by"] + [uid]
            doc["is_read"] = True
        return _from_document(MessageRecord, doc)

    def save_contact(self, contact: ContactRecord) -> None:
        self.contacts[contact.contact_id] = contact

    def add_notification(self, notification: NotificationRecord) -> None:
        self.notifications[notification.notification_id] = asdict(notification)

    def list_notifications(
        self, uid: str, unread_only: bool = False, limit: int = 100
    ) -> list[NotificationRecord]:
        docs = [doc for doc in self.notifications.values() if doc["uid"] == uid]
        if unread_only:
            docs = [doc for doc in docs if not doc["is_read"]]
        docs.sort(key=lambda doc: doc["created_at"], reverse=True)
        return [_from_document(NotificationRecord, doc) for doc in docs[:limit]]

    def mark_notification_read(self, uid: str, notification_id: str) -> bool:
        doc = self.notifications.get(notification_id)
        if not doc or doc["uid"] != uid:
            return False
        doc["is_read"] = True
        return True


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def create_user(self, user: UserRecord) -> None:
        with self.Session() as session:
            session.add(
                UserRow(
                    uid=user.uid,
                    email=user.email,
                    role=user.role,
                    is_active=user.is_active,
                    created_at=user.created_at,
                    document=asdict(user),
                )
            )
            session.commit()

    def get_user(self, uid: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, uid)
            return _from_document(UserRecord, row.document) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return _from_document(UserRecord, row.document) if row else None

    def update_user(
        self,
        uid: str,
        fields: Optional[dict] = None,
        *,
        append: Optional[dict] = None,
        remove: Optional[dict] = None,
    ) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.uid == uid).with_for_update()
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            document = apply_changes(row.document, fields, append, remove)
            row.document = document
            row.role = document["role"]
            row.is_active = document["is_active"]
            session.commit()
            return _from_document(UserRecord, document)

    def list_users(
        self, role: Optional[str] = None, active_only: bool = False
    ) -> list[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow)
            if role:
                stmt = stmt.where(UserRow.role == role)
            if active_only:
                stmt = stmt.where(UserRow.is_active.is_(True))
            stmt = stmt.order_by(UserRow.created_at.asc())
            rows = session.execute(stmt).scalars().all()
            return [_from_document(UserRecord, row.document) for row in rows]

    def create_session(self, session_record: SessionRecord) -> None:
        with self.Session() as session:
            session.add(
                SessionRow(
                    token=session_record.token,
                    uid=session_record.uid,
                    expires_at=session_record.expires_at,
                    created_at=session_record.created_at,
                    revoked_at=session_record.revoked_at,
                )
            )
            session.commit()

    def get_session(self, token: str) -> Optional[SessionRecord]:
        with self.Session() as session:
            row = session.get(SessionRow, token)
            if not row:
                return None
            return SessionRecord(
                token=row.token,
                uid=row.uid,
                expires_at=row.expires_at,
                created_at=row.created_at,
                revoked_at=row.revoked_at,
            )

    def revoke_session(self, token: str) -> None:
        with self.Session() as session:
            row = session.get(SessionRow, token)
            if row and row.revoked_at is None:
                row.revoked_at = time.time()
                session.commit()

    def upsert_catalog_item(self, item: CatalogItemRecord) -> None:
        with self.Session() as session:
            row = session.get(CatalogItemRow, (item.kind, item.category, item.item_id))
            document = asdict(item)
            if row:
                document["created_at"] = row.document.get("created_at", item.created_at)
                row.is_active = item.is_active
                row.sort_order = item.sort_order
                row.document = document
            else:
                session.add(
                    CatalogItemRow(
                        kind=item.kind,
                        category=item.category,
                        item_id=item.item_id,
                        is_active=item.is_active,
                        sort_order=item.sort_order,
                        document=document,
                    )
                )
            session.commit()

    def get_catalog_item(
        self, kind: str, item_id: str, category: str = ""
    ) -> Optional[CatalogItemRecord]:
        with self.Session() as session:
            row = session.get(CatalogItemRow, (kind, category, item_id))
            return _from_document(CatalogItemRecord, row.document) if row else None

    def list_catalog_items(
        self, kind: str, category: Optional[str] = None, active_only: bool = True
    ) -> list[CatalogItemRecord]:
        with self.Session() as session:
            stmt = select(CatalogItemRow).where(CatalogItemRow.kind == kind)
            if category is not None:
                stmt = stmt.where(CatalogItemRow.category == category)
            if active_only:
                stmt = stmt.where(CatalogItemRow.is_active.is_(True))
            stmt = stmt.order_by(
                CatalogItemRow.sort_order.asc(), CatalogItemRow.item_id.asc()
            )
            rows = session.execute(stmt).scalars().all()
            return [_from_document(CatalogItemRecord, row.document) for row in rows]

    def next_order_sequence(self, year: int) -> int:
        with self.Session() as session:
            stmt = (
                select(OrderCounterRow)
                .where(OrderCounterRow.year == year)
                .with_for_update()
            )
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                row = OrderCounterRow(year=year, value=0)
                session.add(row)
            row.value += 1
            value = row.value
            session.commit()
            return value

    def create_order(self, order: OrderRecord) -> None:
        with self.Session() as session:
            session.add(
                OrderRow(
                    order_id=order.order_id,
                    order_number=order.order_number,
                    customer_id=order.customer_id,
                    assigned_designer_id=order.assigned_designer_id,
                    status=order.status,
                    created_at=order.created_at,
                    document=asdict(order),
                )
            )
            session.commit()

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            return _from_document(OrderRecord, row.document) if row else None

    def update_order(
        self,
        order_id: str,
        fields: Optional[dict] = None,
        *,
        append: Optional[dict] = None,
        remove: Optional[dict] = None,
        check: Optional[OrderCheck] = None,
    ) -> Optional[OrderRecord]:
        with self.Session() as session:
            stmt = select(OrderRow).where(OrderRow.order_id == order_id).with_for_update()
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            current = _from_document(OrderRecord, row.document)
            if check is not None and check(current) is False:
                return current
            document = apply_changes(row.document, fields, append, remove)
            row.document = document
            row.status = document["status"]
            row.assigned_designer_id = document["assigned_designer_id"]
            session.commit()
            return _from_document(OrderRecord, document)

    def list_orders(
        self,
        *,
        customer_id: Optional[str] = None,
        designer_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = 100,
    ) -> list[OrderRecord]:
        with self.Session() as session:
            stmt = select(OrderRow)
            if customer_id:
                stmt = stmt.where(OrderRow.customer_id == customer_id)
            if designer_id:
                stmt = stmt.where(OrderRow.assigned_designer_id == designer_id)
            if status:
                stmt = stmt.where(OrderRow.status == status)
            stmt = stmt.order_by(OrderRow.created_at.desc()).limit(limit)
            rows = session.execute(stmt).scalars().all()
            return [_from_document(OrderRecord, row.document) for row in rows]

    def add_message(self, message: MessageRecord) -> None:
        with self.Session() as session:
            session.add(
                MessageRow(
                    message_id=message.message_id,
                    order_id=message.order_id,
                    created_at=message.created_at,
                    document=asdict(message),
                )
            )
            session.commit()

    def get_message(self, order_id: str, message_id: str) -> Optional[MessageRecord]:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if not row or row.order_id != order_id:
                return None
            return _from_document(MessageRecord, row.document)

    def list_messages(self, order_id: str) -> list[MessageRecord]:
        with self.Session() as session:
            stmt = (
                select(MessageRow)
                .where(MessageRow.order_id == order_id)
                .order_by(MessageRow.created_at.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [_from_document(MessageRecord, row.document) for row in rows]

    def mark_message_read(
        self, order_id: str, message_id: str, uid: str
    ) -> Optional[MessageRecord]:
        with self.Session() as session:
            stmt = (
                select(MessageRow)
                .where(MessageRow.message_id == message_id)
                .with_for_update()
            )
            row = session.execute(stmt).scalar_one_or_none()
            if not row or row.order_id != order_id:
                return None
            document = dict(row.document)
            if uid not in document["read_by"]:
                document["read_by"] = document["read_by"] + [uid]
                document["is_read"] = True
                row.document = document
                session.commit()
            return _from_document(MessageRecord, document)

    def save_contact(self, contact: ContactRecord) -> None:
        with self.Session() as session:
            session.add(
                ContactRow(
                    contact_id=contact.contact_id,
                    created_at=contact.created_at,
                    document=asdict(contact),
                )
            )
            session.commit()

    def add_notification(self, notification: NotificationRecord) -> None:
        with self.Session() as session:
            session.add(
                NotificationRow(
                    notification_id=notification.notification_id,
                    uid=notification.uid,
                    is_read=notification.is_read,
                    created_at=notification.created_at,
                    document=asdict(notification),
                )
            )
            session.commit()

    def list_notifications(
        self, uid: str, unread_only: bool = False, limit: int = 100
    ) -> list[NotificationRecord]:
        with self.Session() as session:
            stmt = select(NotificationRow).where(NotificationRow.uid == uid)
            if unread_only:
                stmt = stmt.where(NotificationRow.is_read.is_(False))
            stmt = stmt.order_by(NotificationRow.created_at.desc()).limit(limit)
            rows = session.execute(stmt).scalars().all()
            return [_from_document(NotificationRecord, row.document) for row in rows]

    def mark_notification_read(self, uid: str, notification_id: str) -> bool:
        with self.Session() as session:
            row = session.get(NotificationRow, notification_id)
            if not row or row.uid != uid:
                return False
            row.is_read = True
            row.document = {**row.document, "is_read": True}
            session.commit()
            return True


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    uid = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    role = Column(String, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Float, nullable=False)
    document = Column(JSON, nullable=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    token = Column(String, primary_key=True)
    uid = Column(String, nullable=False, index=True)
    expires_at = Column(Float, nullable=False)
    created_at = Column(Float, nullable=False)
    revoked_at = Column(Float, nullable=True)


class CatalogItemRow(Base):
    __tablename__ = "catalog_items"

    kind = Column(String, primary_key=True)
    category = Column(String, primary_key=True, default="")
    item_id = Column(String, primary_key=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    document = Column(JSON, nullable=False)


class OrderCounterRow(Base):
    __tablename__ = "order_counters"

    year = Column(Integer, primary_key=True)
    value = Column(Integer, nullable=False, default=0)


class OrderRow(Base):
    __tablename__ = "orders"

    order_id = Column(String, primary_key=True)
    order_number = Column(String, nullable=False, unique=True)
    customer_id = Column(String, nullable=False, index=True)
    assigned_designer_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False, index=True)
    document = Column(JSON, nullable=False)


class MessageRow(Base):
    __tablename__ = "order_messages"

    message_id = Column(String, primary_key=True)
    order_id = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    document = Column(JSON, nullable=False)


class ContactRow(Base):
    __tablename__ = "contact_messages"

    contact_id = Column(String, primary_key=True)
    created_at = Column(Float, nullable=False)
    document = Column(JSON, nullable=False)


class NotificationRow(Base):
    __tablename__ = "notifications"

    notification_id = Column(String, primary_key=True)
    uid = Column(String, nullable=False, index=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)
    document = Column(JSON, nullable=False)
