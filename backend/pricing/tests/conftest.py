from decimal import Decimal

import pytest

from ..dataclasses import (
    CateringDetails,
    ComboCategory,
    ComboCategoryItem,
    ComboDefinition,
    DeliveryOptions,
    DeliveryRange,
    PartyRentalDetails,
    SelectableItem,
    Service,
    ServiceType,
    StaffDetails,
    VenueDetails,
)
from ..services.policy import clear_pricing_policy_cache


@pytest.fixture(autouse=True)
def fresh_policy_cache():
    clear_pricing_policy_cache()
    yield
    clear_pricing_policy_cache()


@pytest.fixture
def make_catering():
    def _make(
        menu_items=(),
        combos=(),
        minimum_guests=0,
        minimum_order_amount="0",
        delivery_options=None,
        service_id="cat-1",
        name="Tasty Catering",
    ):
        return Service(
            id=service_id,
            name=name,
            service_type=ServiceType.CATERING,
            details=CateringDetails(
                menu_items=list(menu_items),
                combos=list(combos),
                minimum_guests=minimum_guests,
                minimum_order_amount=Decimal(minimum_order_amount),
                delivery_options=delivery_options,
            ),
            vendor_id="vendor-1",
        )
    return _make


@pytest.fixture
def base_menu():
    """Two plain menu items: A at $10 and B at $5."""
    return [
        SelectableItem(id="item-a", name="Caesar Salad", price=Decimal("10"), category="Salads"),
        SelectableItem(id="item-b", name="Garlic Bread", price=Decimal("5"), category="Sides"),
    ]


@pytest.fixture
def taco_combo():
    """$12 combo with a protein category and a side category carrying a $1.50 upcharge."""
    return ComboDefinition(
        id="combo1",
        name="Taco Bar",
        price=Decimal("12"),
        categories=[
            ComboCategory(
                id="prot",
                name="Proteins",
                max_selections=2,
                items=[
                    ComboCategoryItem(id="chicken", name="Chicken", price=Decimal("4")),
                    ComboCategoryItem(id="steak", name="Steak", price=Decimal("6"), additional_charge=Decimal("2"), is_premium=True),
                ],
            ),
            ComboCategory(
                id="sides",
                name="Sides",
                max_selections=1,
                items=[
                    ComboCategoryItem(id="guac", name="Guacamole", price=Decimal("2"), additional_charge=Decimal("1.50"), is_premium=True),
                    ComboCategoryItem(id="rice", name="Rice", price=Decimal("1")),
                ],
            ),
        ],
    )


@pytest.fixture
def delivery_options():
    return DeliveryOptions(
        delivery=True,
        pickup=True,
        delivery_ranges=[
            DeliveryRange(range="10-20 miles", fee=Decimal("40")),
            DeliveryRange(range="0-10 miles", fee=Decimal("25")),
            DeliveryRange(range="20-30 miles", fee=Decimal("60")),
        ],
        delivery_minimum=Decimal("0"),
    )


@pytest.fixture
def venue_service():
    return Service(
        id="venue-1",
        name="Loft Hall",
        service_type=ServiceType.VENUE,
        details=VenueDetails(),
        price=Decimal("200"),
        quantity=3,
        vendor_id="vendor-2",
        price_type="hourly",
    )


@pytest.fixture
def rental_service():
    return Service(
        id="rent-1",
        name="Party Props",
        service_type=ServiceType.PARTY_RENTAL,
        details=PartyRentalDetails(rental_items=[
            SelectableItem(id="chairs", name="Folding Chair", price=Decimal("3")),
        ]),
        price=Decimal("150"),
        quantity=1,
        vendor_id="vendor-3",
    )


@pytest.fixture
def staff_service():
    return Service(
        id="staff-1",
        name="Event Crew",
        service_type=ServiceType.STAFF,
        details=StaffDetails(
            staff_services=[SelectableItem(id="server", name="Server", price=Decimal("25"))],
            minimum_hours=4,
        ),
        price=Decimal("25"),
        quantity=4,
        vendor_id="vendor-4",
    )
