"""
Catalog normalization

Turns the loosely-shaped service records sent by the booking form into typed
`Service` objects. Each service type gets its own details variant, so the
rest of the engine dispatches on `service_type` instead of probing optional
keys. Several legacy payload shapes are still in circulation and all of them
are accepted here, in one place.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from ..dataclasses import (
    AdjustmentMode,
    AdjustmentType,
    CateringDetails,
    ComboCategory,
    ComboCategoryItem,
    ComboDefinition,
    CustomAdjustment,
    DeliveryOptions,
    DeliveryRange,
    PartyRentalDetails,
    SelectableItem,
    Service,
    ServiceType,
    StaffDetails,
    VenueDetails,
)
from .utils import ZERO, d, normalize_price, to_quantity

logger = logging.getLogger(__name__)

SERVICE_TYPE_ALIASES = {
    "catering": ServiceType.CATERING,
    "venue": ServiceType.VENUE,
    "venues": ServiceType.VENUE,
    "party-rental": ServiceType.PARTY_RENTAL,
    "party-rentals": ServiceType.PARTY_RENTAL,
    "party_rental": ServiceType.PARTY_RENTAL,
    "party_rentals": ServiceType.PARTY_RENTAL,
    "staff": ServiceType.STAFF,
    "events_staff": ServiceType.STAFF,
}


def _pick(raw: Optional[Dict[str, Any]], *keys: str, default=None):
    """First present, non-empty value among `keys`."""
    if not isinstance(raw, dict):
        return default
    for key in keys:
        value = raw.get(key)
        if value is None or value == "" or value == 0 or value == []:
            continue
        return value
    return default


def _sub(raw: Optional[Dict[str, Any]], key: str) -> Dict[str, Any]:
    value = raw.get(key) if isinstance(raw, dict) else None
    return value if isinstance(value, dict) else {}


def _as_list(value) -> List[Any]:
    return value if isinstance(value, list) else []


def normalize_service_type(value: Optional[str]) -> Optional[ServiceType]:
    if not value:
        return None
    return SERVICE_TYPE_ALIASES.get(str(value).strip().lower())


# --------------------------- Items ---------------------------

def build_item(raw: Dict[str, Any], fallback_index: int = 0) -> SelectableItem:
    item_id = str(_pick(raw, "id", "itemId", "cateringId", default=f"item-{fallback_index}"))
    min_qty = raw.get("minQuantity")
    return SelectableItem(
        id=item_id,
        name=str(_pick(raw, "name", "itemName", "menuItemName", "title", default="")),
        price=normalize_price(_pick(raw, "pricePerPerson", "price", "itemPrice", "basePrice", "unitPrice")),
        additional_charge=normalize_price(_pick(raw, "additionalCharge", "upcharge")),
        is_premium=bool(raw.get("isPremium", False)),
        is_combo=False,
        category=str(_pick(raw, "menuName", "category", default="")),
        min_quantity=max(1, min_qty) if isinstance(min_qty, int) and not isinstance(min_qty, bool) else 1,
    )


def build_combo_category(raw: Dict[str, Any], index: int = 0) -> ComboCategory:
    max_selections = raw.get("maxSelections")
    return ComboCategory(
        id=str(_pick(raw, "id", "categoryId", default=f"category-{index}")),
        name=str(_pick(raw, "name", "categoryName", "title", default=f"Category {index + 1}")),
        max_selections=max_selections if isinstance(max_selections, int) and not isinstance(max_selections, bool) else 1,
        items=[
            ComboCategoryItem(
                id=str(_pick(item, "id", "itemId", default=f"combo-item-{i}")),
                name=str(_pick(item, "name", "itemName", "title", default="")),
                price=normalize_price(item.get("price")),
                additional_charge=normalize_price(_pick(item, "additionalCharge", "upcharge")),
                is_premium=bool(item.get("isPremium", False)),
            )
            for i, item in enumerate(_as_list(_pick(raw, "items", "options")))
            if isinstance(item, dict)
        ],
        selection_behavior=raw.get("selectionBehavior") if raw.get("selectionBehavior") in ("quantity", "choice") else None,
    )


def build_combo(raw: Dict[str, Any], fallback_index: int = 0) -> ComboDefinition:
    base = build_item(raw, fallback_index)
    return ComboDefinition(
        id=base.id,
        name=base.name,
        price=base.price,
        additional_charge=base.additional_charge,
        is_premium=base.is_premium,
        category=base.category,
        min_quantity=base.min_quantity,
        categories=[
            build_combo_category(cat, i)
            for i, cat in enumerate(_as_list(_pick(raw, "comboCategories", "categories")))
            if isinstance(cat, dict)
        ],
    )


def is_combo_record(raw: Dict[str, Any]) -> bool:
    return bool(
        raw.get("isCombo")
        or _as_list(raw.get("comboCategories"))
        or raw.get("pricePerPerson") is not None
    )


# --------------------------- Delivery ---------------------------

def build_delivery_ranges(raw) -> List[DeliveryRange]:
    """Ranges arrive either as [{range, fee}] or as a {label: fee} record."""
    if isinstance(raw, dict):
        return [DeliveryRange(range=str(label), fee=normalize_price(fee)) for label, fee in raw.items()]
    return [
        DeliveryRange(range=str(r.get("range", "")), fee=normalize_price(r.get("fee")))
        for r in _as_list(raw)
        if isinstance(r, dict) and r.get("range")
    ]


def build_delivery_options(details: Dict[str, Any]) -> Optional[DeliveryOptions]:
    catering = _sub(details, "catering")
    raw = _pick(details, "deliveryOptions", "delivery_options") or _pick(catering, "deliveryOptions")
    if not isinstance(raw, dict):
        return None
    ranges = raw.get("deliveryRanges") or details.get("deliveryRanges") or catering.get("deliveryRanges")
    return DeliveryOptions(
        delivery=bool(raw.get("delivery", False)),
        pickup=bool(raw.get("pickup", False)),
        delivery_ranges=build_delivery_ranges(ranges),
        delivery_minimum=normalize_price(raw.get("deliveryMinimum")),
    )


# --------------------------- Details variants ---------------------------

def build_catering_details(details: Dict[str, Any]) -> CateringDetails:
    catering = _sub(details, "catering")
    menu = _sub(details, "menu")
    raw_items = _as_list(
        _pick(details, "menuItems")
        or _pick(catering, "menuItems")
        or _pick(menu, "items", "menu_items")
        or _pick(details, "items", "menu_items")
    )
    raw_combos = _as_list(catering.get("combos"))

    menu_items: List[SelectableItem] = []
    combos: List[ComboDefinition] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            continue
        if is_combo_record(raw):
            combos.append(build_combo(raw, index))
        else:
            menu_items.append(build_item(raw, index))

    seen = {c.id for c in combos}
    for index, raw in enumerate(raw_combos):
        if isinstance(raw, dict):
            combo = build_combo(raw, len(raw_items) + index)
            if combo.id not in seen:
                combos.append(combo)
                seen.add(combo.id)

    return CateringDetails(
        menu_items=menu_items,
        combos=combos,
        minimum_guests=to_quantity(_pick(catering, "minimumGuests", "minGuests") or _pick(details, "minimumGuests")),
        minimum_order_amount=normalize_price(
            _pick(catering, "minimumOrderAmount") or _pick(details, "minimumOrderAmount")
        ),
        delivery_options=build_delivery_options(details),
    )


def _build_items(raw_items: Iterable[Any]) -> List[SelectableItem]:
    return [build_item(raw, i) for i, raw in enumerate(raw_items) if isinstance(raw, dict)]


def build_details(service_type: ServiceType, details: Dict[str, Any]):
    if service_type is ServiceType.CATERING:
        return build_catering_details(details)
    if service_type is ServiceType.PARTY_RENTAL:
        rental = _sub(details, "rental")
        return PartyRentalDetails(rental_items=_build_items(_as_list(
            _pick(details, "rentalItems") or _pick(rental, "items") or _pick(details, "rental_items", "items")
        )))
    if service_type is ServiceType.STAFF:
        staff = _sub(details, "staff")
        return StaffDetails(
            staff_services=_build_items(_as_list(
                _pick(details, "staffServices", "services") or _pick(staff, "services")
            )),
            minimum_hours=max(1, to_quantity(_pick(staff, "minimumHours") or _pick(details, "minimumHours"), 1)),
        )
    return VenueDetails(options=_build_items(_as_list(_pick(details, "venueOptions", "options"))))


# --------------------------- Services ---------------------------

def build_service(raw: Dict[str, Any], index: int = 0) -> Optional[Service]:
    """
    Normalize one raw service record.

    Returns None for records whose type is not one of the four supported
    service types; those cannot be priced and are skipped by the caller.
    """
    service_type = normalize_service_type(_pick(raw, "serviceType", "type"))
    if service_type is None:
        logger.warning(f"Skipping service {raw.get('id')!r}: unknown service type {raw.get('serviceType') or raw.get('type')!r}")
        return None

    details = raw.get("service_details") or raw.get("serviceDetails") or {}
    if not isinstance(details, dict):
        details = {}

    quantity = to_quantity(_pick(raw, "quantity", "serviceQuantity", "qty"), 1)
    if quantity < 1:
        quantity = 1
    price = normalize_price(_pick(raw, "servicePrice", "price"))
    if service_type is not ServiceType.CATERING and price == ZERO:
        existing_total = normalize_price(_pick(raw, "totalPrice", "serviceTotalPrice", "total"))
        if existing_total > ZERO:
            price = existing_total / Decimal(quantity)
            logger.debug(f"Derived unit price {price} from totalPrice {existing_total} for service {raw.get('id')!r}")

    vendor = raw.get("vendor") if isinstance(raw.get("vendor"), dict) else {}
    return Service(
        id=str(_pick(raw, "id", "serviceId", default=f"service-{index}")),
        name=str(_pick(raw, "serviceName", "name", default="")),
        service_type=service_type,
        details=build_details(service_type, details),
        price=price,
        quantity=quantity,
        vendor_id=str(_pick(raw, "vendor_id", "vendorId", default="") or vendor.get("id", "")),
        price_type=str(_pick(raw, "priceType", "price_type", default="flat")),
    )


def build_services(raws: Iterable[Dict[str, Any]]) -> List[Service]:
    services = []
    for index, raw in enumerate(raws):
        if not isinstance(raw, dict):
            continue
        service = build_service(raw, index)
        if service is not None:
            services.append(service)
    return services


# --------------------------- Adjustments ---------------------------

# Adjustment values at or above 10**12 cannot be priced in cents.
MAX_ADJUSTMENT_DIGITS = 12


def build_adjustment(raw: Dict[str, Any]) -> Optional[CustomAdjustment]:
    """Adjustments with a non-numeric value are ignored, as the form does."""
    try:
        value = d(raw.get("value") if raw.get("value") not in (None, "") else 0)
    except (InvalidOperation, ValueError):
        logger.warning(f"Ignoring adjustment {raw.get('label')!r}: non-numeric value {raw.get('value')!r}")
        return None
    if not value.is_finite() or value.adjusted() >= MAX_ADJUSTMENT_DIGITS:
        logger.warning(f"Ignoring adjustment {raw.get('label')!r}: value {raw.get('value')!r} is out of range")
        return None

    adj_type = raw.get("type") or AdjustmentType.FIXED.value
    mode = raw.get("mode") or AdjustmentMode.SURCHARGE.value
    return CustomAdjustment(
        label=str(raw.get("label") or ""),
        type=AdjustmentType(adj_type) if adj_type in AdjustmentType._value2member_map_ else AdjustmentType.FIXED,
        mode=AdjustmentMode(mode) if mode in AdjustmentMode._value2member_map_ else AdjustmentMode.SURCHARGE,
        value=value,
        taxable=raw.get("taxable") is not False,
        status_for_drafting=bool(raw.get("statusForDrafting", False)),
    )


def build_adjustments(raws: Iterable[Dict[str, Any]]) -> List[CustomAdjustment]:
    return [a for a in (build_adjustment(r) for r in raws if isinstance(r, dict)) if a is not None]
