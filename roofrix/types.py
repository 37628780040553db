"""
Shared enums for roles, order statuses and storage folders.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    DESIGNER = "designer"


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.IN_PROGRESS: "In Progress",
    OrderStatus.REVIEW: "Under Review",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CatalogKind(str, Enum):
    REPORT_TYPE = "report_type"
    ADDON = "addon"
    STRUCTURE_TYPE = "structure_type"


class StorageFolder(str, Enum):
    SITE_IMAGES = "site-images"
    DESIGN_FILES = "design-files"
    MESSAGE_ATTACHMENTS = "message-attachments"
    USER_AVATARS = "user-avatars"


class EventType(str, Enum):
    ORDER_CREATED = "order_created"
    STATUS_CHANGED = "status_changed"
    DESIGNER_ASSIGNED = "designer_assigned"
    MESSAGE_POSTED = "message_posted"
    CONTACT_SUBMITTED = "contact_submitted"
