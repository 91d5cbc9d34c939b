from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .services.utils import ZERO


class ServiceType(str, Enum):
    CATERING = "catering"
    VENUE = "venue"
    PARTY_RENTAL = "party_rental"
    STAFF = "staff"

    @property
    def wire_name(self) -> str:
        return WIRE_SERVICE_TYPES[self]


WIRE_SERVICE_TYPES = {
    ServiceType.CATERING: "catering",
    ServiceType.VENUE: "venues",
    ServiceType.PARTY_RENTAL: "party_rentals",
    ServiceType.STAFF: "events_staff",
}


class AdjustmentType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class AdjustmentMode(str, Enum):
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"


# --------------------------- Catalog ---------------------------

@dataclass
class SelectableItem:
    id: str
    name: str
    price: Decimal = ZERO
    additional_charge: Decimal = ZERO
    is_premium: bool = False
    is_combo: bool = False
    category: str = ""
    min_quantity: int = 1


@dataclass
class ComboCategoryItem:
    id: str
    name: str
    price: Decimal = ZERO
    additional_charge: Decimal = ZERO
    is_premium: bool = False


@dataclass
class ComboCategory:
    id: str
    name: str
    max_selections: int = 1
    items: List[ComboCategoryItem] = field(default_factory=list)
    selection_behavior: Optional[str] = None  # "quantity" | "choice"

    def find_item(self, item_id: str) -> Optional[ComboCategoryItem]:
        return next((i for i in self.items if i.id == item_id), None)


@dataclass
class ComboDefinition(SelectableItem):
    is_combo: bool = True
    categories: List[ComboCategory] = field(default_factory=list)

    def find_category(self, category_id: str) -> Optional[ComboCategory]:
        return next((c for c in self.categories if c.id == category_id), None)


@dataclass
class DeliveryRange:
    range: str
    fee: Decimal = ZERO


@dataclass
class DeliveryOptions:
    delivery: bool = False
    pickup: bool = False
    delivery_ranges: List[DeliveryRange] = field(default_factory=list)
    delivery_minimum: Decimal = ZERO


# One variant per service type; each owns its own catalog shape.

@dataclass
class CateringDetails:
    menu_items: List[SelectableItem] = field(default_factory=list)
    combos: List[ComboDefinition] = field(default_factory=list)
    minimum_guests: int = 0
    minimum_order_amount: Decimal = ZERO
    delivery_options: Optional[DeliveryOptions] = None

    @property
    def catalog(self) -> List[SelectableItem]:
        return [*self.menu_items, *self.combos]


@dataclass
class VenueDetails:
    options: List[SelectableItem] = field(default_factory=list)

    @property
    def catalog(self) -> List[SelectableItem]:
        return list(self.options)


@dataclass
class PartyRentalDetails:
    rental_items: List[SelectableItem] = field(default_factory=list)

    @property
    def catalog(self) -> List[SelectableItem]:
        return list(self.rental_items)


@dataclass
class StaffDetails:
    staff_services: List[SelectableItem] = field(default_factory=list)
    minimum_hours: int = 1

    @property
    def catalog(self) -> List[SelectableItem]:
        return list(self.staff_services)


ServiceDetails = Union[CateringDetails, VenueDetails, PartyRentalDetails, StaffDetails]


@dataclass
class Service:
    id: str
    name: str
    service_type: ServiceType
    details: ServiceDetails
    price: Decimal = ZERO
    quantity: int = 1
    vendor_id: str = ""
    price_type: str = "flat"

    @property
    def is_catering(self) -> bool:
        return self.service_type is ServiceType.CATERING

    @property
    def catalog(self) -> List[SelectableItem]:
        return self.details.catalog

    @property
    def combos(self) -> List[ComboDefinition]:
        if isinstance(self.details, CateringDetails):
            return self.details.combos
        return []

    @property
    def delivery_options(self) -> Optional[DeliveryOptions]:
        if isinstance(self.details, CateringDetails):
            return self.details.delivery_options
        return None


# --------------------------- Selections ---------------------------

@dataclass(frozen=True)
class BaseSelection:
    item_id: str
    quantity: int
    service_id: Optional[str] = None


@dataclass(frozen=True)
class DurationSelection:
    item_id: str
    hours: int
    service_id: Optional[str] = None


@dataclass(frozen=True)
class ComboSelection:
    combo_id: str
    category_id: str
    item_id: str
    quantity: int


Selection = Union[BaseSelection, DurationSelection, ComboSelection]


@dataclass
class ResolvedItem:
    """A base selection matched (or synthesized) against a service catalog."""
    item: SelectableItem
    quantity: int
    hours: Optional[int] = None
    synthesized: bool = False


@dataclass
class ComboPick:
    category: Optional[ComboCategory]
    item: Optional[ComboCategoryItem]
    item_id: str
    quantity: int

    @property
    def category_name(self) -> str:
        return self.category.name if self.category else "Category"

    @property
    def item_name(self) -> str:
        return self.item.name if self.item and self.item.name else self.item_id

    @property
    def price(self) -> Decimal:
        return self.item.price if self.item else ZERO

    @property
    def additional_charge(self) -> Decimal:
        return self.item.additional_charge if self.item else ZERO


@dataclass
class PerServiceSelections:
    service: Service
    base_items: List[ResolvedItem] = field(default_factory=list)
    durations: Dict[str, int] = field(default_factory=dict)
    combo_picks: Dict[str, List[ComboPick]] = field(default_factory=dict)
    combo_quantities: Dict[str, int] = field(default_factory=dict)
    dropped: List[str] = field(default_factory=list)


# --------------------------- Adjustments ---------------------------

@dataclass
class CustomAdjustment:
    label: str
    type: AdjustmentType = AdjustmentType.FIXED
    mode: AdjustmentMode = AdjustmentMode.SURCHARGE
    value: Decimal = ZERO
    taxable: bool = True
    status_for_drafting: bool = False


@dataclass
class AdjustmentLine:
    label: str
    amount: Decimal
    taxable: bool
    mode: AdjustmentMode
    type: AdjustmentType
    value: Decimal


@dataclass
class AdjustmentResult:
    adjustments_total: Decimal = ZERO
    taxable_total: Decimal = ZERO
    non_taxable_total: Decimal = ZERO
    breakdown: List[AdjustmentLine] = field(default_factory=list)


# --------------------------- Output ---------------------------

@dataclass
class InvoiceLineItem:
    menu_name: str
    item_name: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal
    catering_id: str = ""
    parent_combo_id: Optional[str] = None
    is_combo_category_item: bool = False
    premium_charge: Optional[Decimal] = None
    informational: bool = False


@dataclass
class ComboPrice:
    combo_id: str
    quantity: int
    unit_price: Decimal
    base_total: Decimal
    upcharge_total: Decimal
    total: Decimal
    category_line_items: List[InvoiceLineItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ServiceInvoice:
    service: Service
    total_price: Decimal
    line_items: List[InvoiceLineItem] = field(default_factory=list)
    delivery_fee: Optional[Decimal] = None
    delivery_range: Optional[DeliveryRange] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def service_type(self) -> ServiceType:
        return self.service.service_type

    @property
    def service_name(self) -> str:
        return self.service.name


@dataclass
class ValidationResult:
    ok: bool = True
    code: str = ""
    service_id: str = ""
    service_name: str = ""
    threshold: Optional[Decimal] = None
    actual: Optional[Decimal] = None
    message: str = ""


@dataclass
class DeliveryMinimumWarning:
    service_id: str
    vendor: str
    required: Decimal
    current: Decimal


@dataclass
class ServiceFeeSettings:
    type: str = "percentage"  # percentage | fixed | hybrid
    percentage: Decimal = Decimal("5.0")
    fixed: Decimal = ZERO


@dataclass
class EventDetails:
    event_name: str = "Booking Event"
    company_name: str = ""
    event_location: str = ""
    event_date: str = ""
    service_time: str = ""
    contact_name: str = ""
    phone_number: str = ""
    email_address: str = ""
    additional_notes: str = ""
    add_backup_contact: bool = False


@dataclass
class OrderSnapshot:
    """Everything one invoice computation reads. Never mutated by the engine."""
    services: List[Service]
    selections: Dict[Any, int] = field(default_factory=dict)
    guest_count: int = 1
    adjustments: List[CustomAdjustment] = field(default_factory=list)
    distances_by_service: Dict[str, Decimal] = field(default_factory=dict)
    distance: Optional[Decimal] = None
    resolved_fees: Dict[str, DeliveryRange] = field(default_factory=dict)
    event: EventDetails = field(default_factory=EventDetails)
    tax_exempt: bool = False
    waive_service_fee: bool = False
    tip: Decimal = ZERO
    tax_rate: Decimal = ZERO
    service_fee: Optional[ServiceFeeSettings] = None


@dataclass
class Invoice:
    services: List[ServiceInvoice] = field(default_factory=list)
    subtotal: Decimal = ZERO
    adjustments_total: Decimal = ZERO
    adjustments: List[AdjustmentLine] = field(default_factory=list)
    service_fee: Decimal = ZERO
    delivery_fees_total: Decimal = ZERO
    tip: Decimal = ZERO
    tax: Decimal = ZERO
    grand_total: Decimal = ZERO
    resolved_fees: Dict[str, DeliveryRange] = field(default_factory=dict)
    dropped_selections: List[str] = field(default_factory=list)
    delivery_minimum_warnings: List[DeliveryMinimumWarning] = field(default_factory=list)


@dataclass
class AssemblyResult:
    validation: ValidationResult
    invoice: Optional[Invoice] = None
    payload: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.validation.ok
