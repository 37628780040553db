"""
HTTP routes for the portal API.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from roofrix import auth, orders, pricing, users
from roofrix.auth import get_current_user, get_session_token, require_roles
from roofrix.config import get_settings
from roofrix.db import (
    CatalogItemRecord,
    ContactRecord,
    DbClient,
    MessageRecord,
    OrderRecord,
    UserRecord,
)
from roofrix.dependencies import get_db_client, get_queue_client, get_storage_client
from roofrix.errors import NotFoundError, ValidationError
from roofrix.queue import EventQueue, make_event
from roofrix.schemas import (
    AssignDesignerRequest,
    CatalogItemResponse,
    CategoryPricingResponse,
    ContactRequest,
    CreateCatalogItemRequest,
    CreateOrderRequest,
    CreateUserRequest,
    ListCatalogItemsResponse,
    ListCategoriesResponse,
    ListMessagesResponse,
    ListNotificationsResponse,
    ListOrderFilesResponse,
    ListOrdersResponse,
    ListUsersResponse,
    MessageResponse,
    NotificationResponse,
    OrderResponse,
    PostMessageRequest,
    QuoteRequest,
    QuoteResponse,
    SeedCatalogResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    StatusResponse,
    StructureCategoryResponse,
    TimelineResponse,
    UpdateCatalogItemRequest,
    UpdateStatusRequest,
    UpdateUserRequest,
    UploadFileResponse,
    UserProfileResponse,
)
from roofrix.storage import StorageClient
from roofrix.types import CatalogKind, EventType, OrderStatus, Role
from roofrix.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter()

admin_only = require_roles(Role.ADMIN)


def _user_response(user: UserRecord) -> UserProfileResponse:
    return UserProfileResponse(**user.as_dict())


def _session_response(session: auth.AuthSession) -> SessionResponse:
    return SessionResponse(
        token=session.token,
        expires_at=session.expires_at,
        user=_user_response(session.user),
    )


def _order_response(order: OrderRecord) -> OrderResponse:
    return OrderResponse(**order.as_dict(), status_label=OrderStatus(order.status).label)


def _message_response(message: MessageRecord) -> MessageResponse:
    return MessageResponse(**message.as_dict())


def _catalog_response(item: CatalogItemRecord) -> CatalogItemResponse:
    return CatalogItemResponse(**item.as_dict())


@router.post("/auth/signup", response_model=SessionResponse, status_code=201)
def sign_up(payload: SignUpRequest, db: DbClient = Depends(get_db_client)):
    session = auth.sign_up(
        db,
        payload.email,
        payload.password,
        ttl_seconds=get_settings().session_ttl_seconds,
        display_name=payload.display_name or "",
    )
    return _session_response(session)


@router.post("/auth/signin", response_model=SessionResponse)
def sign_in(payload: SignInRequest, db: DbClient = Depends(get_db_client)):
    session = auth.sign_in(
        db,
        payload.email,
        payload.password,
        ttl_seconds=get_settings().session_ttl_seconds,
    )
    return _session_response(session)


@router.post("/auth/signout", response_model=StatusResponse)
def sign_out(
    token: str = Depends(get_session_token),
    db: DbClient = Depends(get_db_client),
):
    auth.sign_out(db, token)
    return StatusResponse(status="ok")


@router.get("/auth/me", response_model=UserProfileResponse)
def me(user: UserRecord = Depends(get_current_user)):
    return _user_response(user)


@router.get("/users", response_model=ListUsersResponse)
def list_users(
    role: str | None = Query(None),
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return ListUsersResponse(
        users=[_user_response(user) for user in users.list_users(db, role)]
    )


@router.post("/users", response_model=UserProfileResponse, status_code=201)
def create_user(
    payload: CreateUserRequest,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    user = auth.create_user_account(
        db,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        display_name=payload.display_name or "",
        phone_number=payload.phone_number or "",
        company=payload.company or "",
    )
    logger.info("Admin %s created %s account %s", admin.uid, user.role, user.uid)
    return _user_response(user)


@router.get("/users/{uid}", response_model=UserProfileResponse)
def get_user(
    uid: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return _user_response(users.get_profile_for(db, user, uid))


@router.patch("/users/{uid}", response_model=UserProfileResponse)
def update_user(
    uid: str,
    payload: UpdateUserRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    changes = payload.model_dump(exclude_none=True, mode="json")
    return _user_response(users.update_profile(db, user, uid, changes))


@router.post("/users/{uid}/activate", response_model=UserProfileResponse)
def activate_user(
    uid: str,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return _user_response(users.set_active(db, admin, uid, True))


@router.post("/users/{uid}/deactivate", response_model=UserProfileResponse)
def deactivate_user(
    uid: str,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return _user_response(users.set_active(db, admin, uid, False))


@router.post("/users/{uid}/avatar", response_model=UserProfileResponse)
async def upload_avatar(
    uid: str,
    file: UploadFile = File(...),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    data = await file.read()
    updated = users.upload_avatar(
        db, storage, user, uid, file.filename or "avatar", file.content_type, data
    )
    return _user_response(updated)


@router.get("/pricing/categories", response_model=ListCategoriesResponse)
def list_categories():
    return ListCategoriesResponse(
        categories=[
            StructureCategoryResponse(**category.as_dict())
            for category in pricing.list_categories()
        ]
    )


@router.get("/pricing/categories/{category_id}", response_model=CategoryPricingResponse)
def get_category_pricing(category_id: str, db: DbClient = Depends(get_db_client)):
    category_pricing = pricing.get_pricing(db, category_id)
    if category_pricing is None:
        raise HTTPException(status_code=404, detail="Structure category not found")
    return CategoryPricingResponse(**category_pricing.as_dict())


@router.get("/pricing/structure-types", response_model=ListCatalogItemsResponse)
def list_structure_types(db: DbClient = Depends(get_db_client)):
    return ListCatalogItemsResponse(
        items=[_catalog_response(item) for item in pricing.list_structure_types(db)]
    )


@router.post("/pricing/quote", response_model=QuoteResponse)
def quote(payload: QuoteRequest, db: DbClient = Depends(get_db_client)):
    result = pricing.quote(
        db, payload.structure_category, payload.report_type_id, payload.addon_ids
    )
    return QuoteResponse(**result.as_dict())


@router.post("/pricing/seed", response_model=SeedCatalogResponse)
def seed_catalog(
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return SeedCatalogResponse(seeded=pricing.seed_default_catalog(db))


def _list_catalog(db: DbClient, kind: CatalogKind, category: str | None, include_inactive: bool):
    items = db.list_catalog_items(
        kind.value, category=category, active_only=not include_inactive
    )
    return ListCatalogItemsResponse(items=[_catalog_response(item) for item in items])


def _create_catalog_item(
    db: DbClient, kind: CatalogKind, payload: CreateCatalogItemRequest
) -> CatalogItemResponse:
    item = pricing.add_catalog_item(db, kind, **payload.model_dump())
    return _catalog_response(item)


def _update_catalog_item(
    db: DbClient, kind: CatalogKind, item_id: str, payload: UpdateCatalogItemRequest
) -> CatalogItemResponse:
    item = pricing.update_catalog_item(
        db,
        kind,
        item_id,
        payload.category,
        price=payload.price,
        is_active=payload.is_active,
    )
    return _catalog_response(item)


@router.get("/pricing/report-types", response_model=ListCatalogItemsResponse)
def list_report_types(
    category: str | None = Query(None),
    include_inactive: bool = Query(False),
    db: DbClient = Depends(get_db_client),
):
    return _list_catalog(db, CatalogKind.REPORT_TYPE, category, include_inactive)


@router.post("/pricing/report-types", response_model=CatalogItemResponse, status_code=201)
def create_report_type(
    payload: CreateCatalogItemRequest,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return _create_catalog_item(db, CatalogKind.REPORT_TYPE, payload)


@router.patch("/pricing/report-types/{item_id}", response_model=CatalogItemResponse)
def update_report_type(
    item_id: str,
    payload: UpdateCatalogItemRequest,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return _update_catalog_item(db, CatalogKind.REPORT_TYPE, item_id, payload)


@router.get("/pricing/addons", response_model=ListCatalogItemsResponse)
def list_addons(
    category: str | None = Query(None),
    include_inactive: bool = Query(False),
    db: DbClient = Depends(get_db_client),
):
    return _list_catalog(db, CatalogKind.ADDON, category, include_inactive)


@router.post("/pricing/addons", response_model=CatalogItemResponse, status_code=201)
def create_addon(
    payload: CreateCatalogItemRequest,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return _create_catalog_item(db, CatalogKind.ADDON, payload)


@router.patch("/pricing/addons/{item_id}", response_model=CatalogItemResponse)
def update_addon(
    item_id: str,
    payload: UpdateCatalogItemRequest,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
):
    return _update_catalog_item(db, CatalogKind.ADDON, item_id, payload)


@router.get("/orders", response_model=ListOrdersResponse)
def list_orders(
    status: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    limit: int | None = Query(None, ge=1, le=500),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    found = orders.list_orders_for(
        db,
        user,
        status=status,
        search=search,
        limit=limit or get_settings().orders_list_limit,
    )
    return ListOrdersResponse(orders=[_order_response(order) for order in found])


@router.post("/orders", response_model=OrderResponse, status_code=201)
def create_order(
    payload: CreateOrderRequest,
    customer: UserRecord = Depends(require_roles(Role.CUSTOMER)),
    db: DbClient = Depends(get_db_client),
    queue: EventQueue = Depends(get_queue_client),
):
    draft = orders.OrderDraft(**payload.model_dump(mode="json"))
    return _order_response(orders.create_order(db, queue, customer, draft))


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return _order_response(orders.get_order_for(db, user, order_id))


@router.post("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    payload: UpdateStatusRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    queue: EventQueue = Depends(get_queue_client),
):
    updated = orders.update_status(
        db, queue, user, order_id, payload.status.value, payload.notes
    )
    return _order_response(updated)


@router.post("/orders/{order_id}/assign", response_model=OrderResponse)
def assign_designer(
    order_id: str,
    payload: AssignDesignerRequest,
    admin: UserRecord = Depends(admin_only),
    db: DbClient = Depends(get_db_client),
    queue: EventQueue = Depends(get_queue_client),
):
    updated = orders.assign_designer(db, queue, admin, order_id, payload.designer_id)
    return _order_response(updated)


@router.get("/orders/{order_id}/timeline", response_model=TimelineResponse)
def order_timeline(
    order_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return TimelineResponse(
        order_id=order_id, entries=orders.status_history(db, user, order_id)
    )


@router.get("/orders/{order_id}/messages", response_model=ListMessagesResponse)
def list_order_messages(
    order_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    messages = orders.list_messages(db, user, order_id)
    return ListMessagesResponse(messages=[_message_response(m) for m in messages])


@router.post("/orders/{order_id}/messages", response_model=MessageResponse, status_code=201)
def post_order_message(
    order_id: str,
    payload: PostMessageRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    queue: EventQueue = Depends(get_queue_client),
):
    message = orders.post_message(
        db, queue, user, order_id, payload.message, payload.attachments
    )
    return _message_response(message)


@router.post(
    "/orders/{order_id}/messages/{message_id}/read", response_model=MessageResponse
)
def mark_order_message_read(
    order_id: str,
    message_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return _message_response(orders.mark_message_read(db, user, order_id, message_id))


@router.get("/orders/{order_id}/files/{kind}", response_model=ListOrderFilesResponse)
def list_order_files(
    order_id: str,
    kind: str,
    expires_in: int | None = Query(None, ge=60, le=86400),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    files = orders.list_order_files(
        db,
        storage,
        user,
        order_id,
        kind,
        expires_in=expires_in or get_settings().presign_expires_in,
    )
    return ListOrderFilesResponse(files=files)


@router.post(
    "/orders/{order_id}/files/{kind}", response_model=UploadFileResponse, status_code=201
)
async def upload_order_file(
    order_id: str,
    kind: str,
    file: UploadFile = File(...),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    data = await file.read()
    path = orders.upload_order_file(
        db,
        storage,
        user,
        order_id,
        kind,
        file.filename or "upload",
        file.content_type,
        data,
    )
    url = storage.presign_get(path, expires_in=get_settings().presign_expires_in)
    return UploadFileResponse(path=path, url=url)


@router.delete("/orders/{order_id}/files/{kind}", response_model=StatusResponse)
def delete_order_file(
    order_id: str,
    kind: str,
    path: str = Query(..., description="Object path in storage"),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    orders.delete_order_file(db, storage, user, order_id, kind, path)
    return StatusResponse(status="ok")


@router.post("/contact", response_model=StatusResponse, status_code=201)
def submit_contact(
    payload: ContactRequest,
    db: DbClient = Depends(get_db_client),
    queue: EventQueue = Depends(get_queue_client),
):
    name = payload.name.strip()
    email = payload.email.strip().lower()
    message = payload.message.strip()
    if not name:
        raise ValidationError("Name is required")
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address")
    if len(message) < 10:
        raise ValidationError("Message must be at least 10 characters")

    record = ContactRecord(
        contact_id=uuid4().hex, name=name, email=email, message=message
    )
    db.save_contact(record)
    queue.enqueue(
        make_event(
            EventType.CONTACT_SUBMITTED.value,
            contact_id=record.contact_id,
            name=name,
            email=email,
        )
    )
    logger.info("Stored contact message %s", record.contact_id)
    return StatusResponse(status="ok")


@router.get("/notifications", response_model=ListNotificationsResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    found = db.list_notifications(user.uid, unread_only=unread_only, limit=limit)
    return ListNotificationsResponse(
        notifications=[NotificationResponse(**n.as_dict()) for n in found]
    )


@router.post("/notifications/{notification_id}/read", response_model=StatusResponse)
def mark_notification_read(
    notification_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.mark_notification_read(user.uid, notification_id):
        raise NotFoundError("Notification not found")
    return StatusResponse(status="ok")
