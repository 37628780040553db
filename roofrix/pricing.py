"""
Structure categories, the report catalog and order quotes.

Categories are fixed; report types, addons and structure types live in the
catalog so admins can edit prices. ``quote`` resolves a selection against
the active catalog and produces the price snapshot stored on an order.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Optional

from roofrix.db import CatalogItemRecord, DbClient
from roofrix.errors import NotFoundError, PricingError, ValidationError
from roofrix.types import CatalogKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StructureCategory:
    id: str
    name: str
    description: str
    sq_range: str
    min_sq: float
    max_sq: Optional[float]

    def as_dict(self) -> dict:
        return asdict(self)


STRUCTURE_CATEGORIES = (
    StructureCategory(
        id="basic",
        name="Basic Structure",
        description="Small residential properties",
        sq_range="< 30 SQs",
        min_sq=0,
        max_sq=30,
    ),
    StructureCategory(
        id="moderate",
        name="Moderate Structure",
        description="Medium-sized residential properties",
        sq_range="30 - 60 SQs",
        min_sq=30,
        max_sq=60,
    ),
    StructureCategory(
        id="complex",
        name="Complex / Commercial Structure",
        description="Large residential or commercial properties",
        sq_range="> 60 SQs",
        min_sq=60,
        max_sq=None,
    ),
)

# Report types are the same in every category.
DEFAULT_REPORT_TYPES = (
    ("roof_esx_only", "Roof ESX only", "ESX format", 14),
    ("roof_esx_pdf", "Roof ESX+PDF", "ESX with PDF report", 19),
    ("roof_xml_only", "Roof XML only", "XML format", 14),
    ("roof_xml_pdf", "Roof XML+PDF", "XML with PDF report", 19),
    ("wall_esx_x1", "Wall ESX only (X1)", "Single wall ESX", 33),
    ("wall_esx_pdf_x1", "Wall ESX+PDF (X1)", "Single wall ESX with PDF", 42),
    ("wall_esx_x2", "Wall ESX only (X2)", "Double wall ESX", 33),
    ("wall_esx_pdf_x2", "Wall ESX+PDF (X2)", "Double wall ESX with PDF", 42),
)

# (rush, fence, deck) per category
DEFAULT_ADDON_PRICES = {
    "basic": (20, 8, 8),
    "moderate": (30, 12, 12),
    "complex": (50, 20, 20),
}

DEFAULT_STRUCTURE_TYPES = ("Main", "Main and Garage")


@dataclass
class CategoryPricing:
    category: StructureCategory
    report_types: list[CatalogItemRecord] = field(default_factory=list)
    addons: list[CatalogItemRecord] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "category": self.category.as_dict(),
            "report_types": [item.as_dict() for item in self.report_types],
            "addons": [item.as_dict() for item in self.addons],
        }


@dataclass
class Quote:
    category: StructureCategory
    report_type: dict
    addons: list[dict]
    base_price: float
    addons_total: float
    total_price: float

    def as_dict(self) -> dict:
        return {
            "structure_category": self.category.id,
            "structure_category_name": self.category.name,
            "structure_category_sq_range": self.category.sq_range,
            "report_type": self.report_type,
            "addons": self.addons,
            "base_price": self.base_price,
            "addons_total": self.addons_total,
            "total_price": self.total_price,
        }


def list_categories() -> list[StructureCategory]:
    return list(STRUCTURE_CATEGORIES)


def get_category(category_id: str) -> Optional[StructureCategory]:
    for category in STRUCTURE_CATEGORIES:
        if category.id == category_id:
            return category
    return None


def category_display_name(category_id: str) -> str:
    category = get_category(category_id)
    return category.name if category else category_id


def category_for_squares(squares: float) -> StructureCategory:
    """Pick the tier whose ``[min_sq, max_sq)`` range holds the roof area."""
    if squares < 0:
        raise ValidationError("Estimated area must be greater than or equal to 0")
    for category in STRUCTURE_CATEGORIES:
        if squares >= category.min_sq and (
            category.max_sq is None or squares < category.max_sq
        ):
            return category
    return STRUCTURE_CATEGORIES[-1]


def get_pricing(db: DbClient, category_id: str) -> Optional[CategoryPricing]:
    category = get_category(category_id)
    if category is None:
        return None
    return CategoryPricing(
        category=category,
        report_types=db.list_catalog_items(
            CatalogKind.REPORT_TYPE.value, category=category_id
        ),
        addons=db.list_catalog_items(CatalogKind.ADDON.value, category=category_id),
    )


def list_structure_types(db: DbClient) -> list[CatalogItemRecord]:
    return db.list_catalog_items(CatalogKind.STRUCTURE_TYPE.value, category="")


def default_catalog() -> list[CatalogItemRecord]:
    items: list[CatalogItemRecord] = []
    for category in STRUCTURE_CATEGORIES:
        for index, (item_id, name, description, price) in enumerate(DEFAULT_REPORT_TYPES):
            items.append(
                CatalogItemRecord(
                    kind=CatalogKind.REPORT_TYPE.value,
                    item_id=item_id,
                    category=category.id,
                    name=name,
                    description=description,
                    price=float(price),
                    sort_order=index + 1,
                )
            )
        rush, fence, deck = DEFAULT_ADDON_PRICES[category.id]
        addons = (
            (f"{category.id}_rush_2h", "2-Hour Rush", rush, "URGENT"),
            (f"{category.id}_fence", "Fence", fence, None),
            (f"{category.id}_deck", "Deck", deck, None),
        )
        for index, (item_id, name, price, badge) in enumerate(addons):
            items.append(
                CatalogItemRecord(
                    kind=CatalogKind.ADDON.value,
                    item_id=item_id,
                    category=category.id,
                    name=name,
                    price=float(price),
                    badge=badge,
                    sort_order=index + 1,
                )
            )
    for index, name in enumerate(DEFAULT_STRUCTURE_TYPES):
        items.append(
            CatalogItemRecord(
                kind=CatalogKind.STRUCTURE_TYPE.value,
                item_id=f"structure_type_{index + 1}",
                name=name,
                sort_order=index + 1,
            )
        )
    return items


def seed_default_catalog(db: DbClient) -> int:
    """Upsert the default catalog; safe to run more than once."""
    items = default_catalog()
    for item in items:
        db.upsert_catalog_item(item)
    logger.info("Seeded %d catalog items", len(items))
    return len(items)


def _require_category(category_id: str) -> StructureCategory:
    category = get_category(category_id)
    if category is None:
        raise PricingError(f"Unknown structure category: {category_id}")
    return category


def _check_price(price: float) -> float:
    if price < 0:
        raise ValidationError("Price must be greater than or equal to 0")
    return round(float(price), 2)


def add_catalog_item(
    db: DbClient,
    kind: CatalogKind,
    *,
    item_id: str,
    name: str,
    category: str,
    price: float,
    description: str = "",
    badge: Optional[str] = None,
    is_active: bool = True,
    sort_order: int = 0,
) -> CatalogItemRecord:
    kind = CatalogKind(kind)
    if kind != CatalogKind.STRUCTURE_TYPE:
        _require_category(category)
    if db.get_catalog_item(kind.value, item_id, category):
        raise ValidationError(f"Catalog item already exists: {item_id}")
    item = CatalogItemRecord(
        kind=kind.value,
        item_id=item_id,
        category=category,
        name=name,
        description=description,
        price=_check_price(price),
        badge=badge,
        is_active=is_active,
        sort_order=sort_order,
    )
    db.upsert_catalog_item(item)
    logger.info("Added %s %s/%s", kind.value, category, item_id)
    return item


def update_catalog_item(
    db: DbClient,
    kind: CatalogKind,
    item_id: str,
    category: str,
    *,
    price: Optional[float] = None,
    is_active: Optional[bool] = None,
) -> CatalogItemRecord:
    kind = CatalogKind(kind)
    item = db.get_catalog_item(kind.value, item_id, category)
    if item is None:
        raise NotFoundError(f"Catalog item not found: {item_id}")
    if price is not None:
        item.price = _check_price(price)
    if is_active is not None:
        item.is_active = is_active
    item.updated_at = time.time()
    db.upsert_catalog_item(item)
    logger.info("Updated %s %s/%s", kind.value, category, item_id)
    return item


def _snapshot(item: CatalogItemRecord) -> dict:
    return {"id": item.item_id, "name": item.name, "price": round(item.price, 2)}


def quote(
    db: DbClient,
    category_id: str,
    report_type_id: str,
    addon_ids: Optional[list[str]] = None,
) -> Quote:
    category = _require_category(category_id)

    report_type = db.get_catalog_item(
        CatalogKind.REPORT_TYPE.value, report_type_id, category.id
    )
    if report_type is None or not report_type.is_active:
        raise PricingError(
            f"Report type {report_type_id!r} is not available for {category.name}"
        )

    addons: list[CatalogItemRecord] = []
    seen: set[str] = set()
    for addon_id in addon_ids or []:
        if addon_id in seen:
            continue
        seen.add(addon_id)
        addon = db.get_catalog_item(CatalogKind.ADDON.value, addon_id, category.id)
        if addon is None or not addon.is_active:
            raise PricingError(f"Addon {addon_id!r} is not available for {category.name}")
        addons.append(addon)

    base_price = round(report_type.price, 2)
    addons_total = round(sum(addon.price for addon in addons), 2)
    return Quote(
        category=category,
        report_type=_snapshot(report_type),
        addons=[_snapshot(addon) for addon in addons],
        base_price=base_price,
        addons_total=addons_total,
        total_price=round(base_price + addons_total, 2),
    )
