"""
Pydantic schemas for the portal API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from roofrix.types import OrderStatus, Priority, Role


class SignUpRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=256)
    display_name: Optional[str] = Field(default=None, max_length=120)


class SignInRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=256)


class UserProfileResponse(BaseModel):
    uid: str
    email: str
    role: Role
    display_name: str = ""
    phone_number: str = ""
    company: str = ""
    photo_path: str = ""
    is_active: bool
    assigned_orders: Optional[list[str]] = None
    created_at: float
    updated_at: float
    last_login_at: Optional[float] = None


class SessionResponse(BaseModel):
    token: str
    token_type: Literal["bearer"] = "bearer"
    expires_at: float
    user: UserProfileResponse


class StatusResponse(BaseModel):
    status: Literal["ok"]


class CreateUserRequest(BaseModel):
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=256)
    role: Role
    display_name: Optional[str] = Field(default=None, max_length=120)
    phone_number: Optional[str] = Field(default=None, max_length=40)
    company: Optional[str] = Field(default=None, max_length=120)


class UpdateUserRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=120)
    phone_number: Optional[str] = Field(default=None, max_length=40)
    company: Optional[str] = Field(default=None, max_length=120)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class ListUsersResponse(BaseModel):
    users: list[UserProfileResponse]


class StructureCategoryResponse(BaseModel):
    id: str
    name: str
    description: str
    sq_range: str
    min_sq: float
    max_sq: Optional[float] = None


class CatalogItemResponse(BaseModel):
    kind: str
    item_id: str
    name: str
    category: str = ""
    description: str = ""
    price: float
    badge: Optional[str] = None
    is_active: bool
    sort_order: int


class CategoryPricingResponse(BaseModel):
    category: StructureCategoryResponse
    report_types: list[CatalogItemResponse]
    addons: list[CatalogItemResponse]


class ListCategoriesResponse(BaseModel):
    categories: list[StructureCategoryResponse]


class ListCatalogItemsResponse(BaseModel):
    items: list[CatalogItemResponse]


class CreateCatalogItemRequest(BaseModel):
    item_id: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=120)
    category: str
    price: float = Field(..., ge=0)
    description: str = Field(default="", max_length=500)
    badge: Optional[str] = Field(default=None, max_length=32)
    is_active: bool = True
    sort_order: int = 0


class UpdateCatalogItemRequest(BaseModel):
    category: str
    price: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class SeedCatalogResponse(BaseModel):
    seeded: int


class QuoteRequest(BaseModel):
    structure_category: str
    report_type_id: str
    addon_ids: list[str] = Field(default_factory=list)


class PriceLine(BaseModel):
    id: str
    name: str
    price: float


class QuoteResponse(BaseModel):
    structure_category: str
    structure_category_name: str
    structure_category_sq_range: str
    report_type: PriceLine
    addons: list[PriceLine]
    base_price: float
    addons_total: float
    total_price: float


class CreateOrderRequest(BaseModel):
    project_address: str = Field(..., min_length=1, max_length=500)
    report_type_id: str
    structure_category: Optional[str] = None
    addon_ids: list[str] = Field(default_factory=list)
    project_name: str = Field(default="", max_length=200)
    project_description: str = Field(default="", max_length=2000)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    structure_type: str = Field(default="", max_length=120)
    primary_pitch: str = Field(default="", max_length=32)
    secondary_pitch: str = Field(default="", max_length=32)
    special_instructions: str = Field(default="", max_length=2000)
    roof_type: str = Field(default="", max_length=120)
    estimated_area: Optional[float] = Field(default=None, ge=0)
    priority: Priority = Priority.MEDIUM


class TimelineEntry(BaseModel):
    status: OrderStatus
    changed_by: str
    changed_by_email: str
    changed_by_role: Optional[str] = None
    changed_at: float
    notes: str = ""


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    customer_email: str
    customer_name: str
    project_name: str
    project_address: str
    project_description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    structure_category: str
    structure_category_name: str
    structure_category_sq_range: str
    structure_type: str = ""
    primary_pitch: str = ""
    secondary_pitch: str = ""
    special_instructions: str = ""
    roof_type: str = ""
    estimated_area: float = 0.0
    report_type: PriceLine
    addons: list[PriceLine]
    base_price: float
    addons_total: float
    total_price: float
    priority: Priority
    status: OrderStatus
    status_label: str
    current_status_updated_at: float
    current_status_updated_by: str
    assigned_designer_id: Optional[str] = None
    assigned_designer_email: Optional[str] = None
    site_images: list[str]
    design_files: list[str]
    status_timeline: list[TimelineEntry]
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None


class ListOrdersResponse(BaseModel):
    orders: list[OrderResponse]


class UpdateStatusRequest(BaseModel):
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=1000)


class AssignDesignerRequest(BaseModel):
    designer_id: str


class TimelineResponse(BaseModel):
    order_id: str
    entries: list[TimelineEntry]


class PostMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    attachments: list[str] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message_id: str
    order_id: str
    sender_id: str
    sender_email: str
    sender_role: Role
    message: str
    attachments: list[str]
    is_read: bool
    read_by: list[str]
    created_at: float


class ListMessagesResponse(BaseModel):
    messages: list[MessageResponse]


class OrderFile(BaseModel):
    path: str
    url: str


class ListOrderFilesResponse(BaseModel):
    files: list[OrderFile]


class UploadFileResponse(BaseModel):
    path: str
    url: str


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., max_length=254)
    message: str = Field(..., min_length=10, max_length=5000)


class NotificationResponse(BaseModel):
    notification_id: str
    kind: str
    title: str
    body: str = ""
    order_id: Optional[str] = None
    is_read: bool
    created_at: float


class ListNotificationsResponse(BaseModel):
    notifications: list[NotificationResponse]
