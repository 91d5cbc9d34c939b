"""
End-to-end tests for invoice assembly: selections in, totals and wire
payload out.
"""

import copy
import json
from decimal import Decimal

import pytest

from ..dataclasses import (
    AdjustmentMode,
    AdjustmentType,
    CustomAdjustment,
    DeliveryRange,
    EventDetails,
    OrderSnapshot,
    SelectableItem,
    ServiceFeeSettings,
)
from ..services.invoice import (
    assemble_invoice,
    build_invoice_payload,
    compute_service_fee,
    serialize_payload,
)
from ..services.policy import DEFAULT_POLICY


@pytest.fixture
def combo_order(make_catering, base_menu, taco_combo, delivery_options, venue_service):
    catering = make_catering(menu_items=base_menu, combos=[taco_combo], delivery_options=delivery_options)
    return OrderSnapshot(
        services=[catering, venue_service],
        selections={"item-a": 2, "item-b": 1, "combo1_prot_chicken": 3, "combo1_sides_guac": 1},
        guest_count=10,
        adjustments=[CustomAdjustment(label="Setup", value=Decimal("20"))],
        distance=Decimal("12"),
        event=EventDetails(event_name="Launch Party", contact_name="Sam", add_backup_contact=True),
    )


class TestScenarios:
    """Reference orders"""

    def test_base_catering_order(self, make_catering, base_menu):
        snapshot = OrderSnapshot(services=[make_catering(menu_items=base_menu)], selections={"item-a": 2, "item-b": 1})
        result = assemble_invoice(snapshot, DEFAULT_POLICY)
        assert result.ok
        assert result.invoice.services[0].total_price == Decimal("25")
        assert result.invoice.subtotal == Decimal("25.00")

    def test_combo_order(self, make_catering, taco_combo):
        snapshot = OrderSnapshot(
            services=[make_catering(combos=[taco_combo])],
            selections={"combo1_prot_chicken": 3, "combo1_sides_guac": 1},
            guest_count=10,
        )
        invoice = assemble_invoice(snapshot, DEFAULT_POLICY).invoice
        assert invoice.services[0].total_price == Decimal("51")

    def test_venue_service(self, venue_service):
        invoice = assemble_invoice(OrderSnapshot(services=[venue_service]), DEFAULT_POLICY).invoice
        assert invoice.services[0].total_price == Decimal("600")
        assert invoice.services[0].line_items == []

    def test_zero_selection_combo_is_not_a_line(self, make_catering, base_menu, taco_combo):
        snapshot = OrderSnapshot(
            services=[make_catering(menu_items=base_menu, combos=[taco_combo])],
            selections={"item-a": 1},
        )
        invoice = assemble_invoice(snapshot, DEFAULT_POLICY).invoice
        assert [line.catering_id for line in invoice.services[0].line_items] == ["item-a"]
        assert invoice.services[0].total_price == Decimal("10")


class TestTotals:
    """Aggregate arithmetic"""

    def test_full_order(self, combo_order):
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        catering, venue = invoice.services
        assert catering.total_price == Decimal("76")  # 25 base items + 51 combo
        assert venue.total_price == Decimal("600")
        assert invoice.subtotal == Decimal("676.00")
        assert invoice.adjustments_total == Decimal("20.00")
        assert invoice.service_fee == Decimal("33.80")
        assert catering.delivery_fee == Decimal("40")
        assert invoice.delivery_fees_total == Decimal("40.00")
        assert invoice.tax == Decimal("0.00")
        assert invoice.grand_total == Decimal("769.80")

    def test_category_lines_are_not_summed(self, combo_order):
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        lines = invoice.services[0].line_items
        assert any(line.is_combo_category_item for line in lines)
        priced = sum(line.total_price for line in lines if not line.informational)
        assert priced == invoice.services[0].total_price

    def test_waived_service_fee(self, combo_order):
        combo_order.waive_service_fee = True
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert invoice.service_fee == Decimal("0.00")
        assert invoice.grand_total == Decimal("736.00")

    def test_tax_on_taxable_base(self, combo_order):
        combo_order.tax_rate = Decimal("0.10")
        combo_order.adjustments.append(
            CustomAdjustment(label="Gratuity", value=Decimal("30"), taxable=False)
        )
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        # (676 + 33.80 + 40 + 20) * 0.10
        assert invoice.tax == Decimal("76.98")
        assert invoice.grand_total == Decimal("676") + Decimal("50") + Decimal("33.80") + Decimal("40") + Decimal("76.98")

    def test_tax_exempt(self, combo_order):
        combo_order.tax_rate = Decimal("0.10")
        combo_order.tax_exempt = True
        assert assemble_invoice(combo_order, DEFAULT_POLICY).invoice.tax == Decimal("0.00")

    def test_tip_is_added(self, combo_order):
        combo_order.tip = Decimal("15")
        assert assemble_invoice(combo_order, DEFAULT_POLICY).invoice.grand_total == Decimal("784.80")

    def test_discount_percentage_uses_subtotal_only(self, combo_order):
        combo_order.adjustments = [CustomAdjustment(
            label="Promo", type=AdjustmentType.PERCENTAGE, mode=AdjustmentMode.DISCOUNT, value=Decimal("10"),
        )]
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert invoice.adjustments_total == Decimal("-67.60")

    @pytest.mark.parametrize("tax_rate", [Decimal("0"), Decimal("0.0825")])
    def test_rounded_parts_add_up_to_grand_total(self, make_catering, tax_rate):
        """Half-cent fee and surcharge on 10.08 must not leave the total a cent off"""
        bread = SelectableItem(id="bread", name="Sourdough", price=Decimal("10.08"))
        snapshot = OrderSnapshot(
            services=[make_catering(menu_items=[bread])],
            selections={"bread": 1},
            adjustments=[CustomAdjustment(label="Rush", type=AdjustmentType.PERCENTAGE, value=Decimal("5"))],
            tax_rate=tax_rate,
        )
        invoice = assemble_invoice(snapshot, DEFAULT_POLICY).invoice
        assert invoice.adjustments_total == Decimal("0.50")
        assert invoice.service_fee == Decimal("0.50")
        parts = (
            invoice.subtotal + invoice.adjustments_total + invoice.service_fee
            + invoice.delivery_fees_total + invoice.tip + invoice.tax
        )
        assert invoice.grand_total == parts
        if not tax_rate:
            assert invoice.grand_total == Decimal("11.08")

    def test_staff_and_rental_are_flat(self, staff_service, rental_service):
        snapshot = OrderSnapshot(
            services=[staff_service, rental_service],
            selections={"server": 2, "server_duration": 6, "balloon_arch": 1},
        )
        invoice = assemble_invoice(snapshot, DEFAULT_POLICY).invoice
        staff, rental = invoice.services
        assert staff.total_price == Decimal("100")
        assert staff.line_items[0].total_price == Decimal("300")  # 25 * 2 * 6 hours
        assert rental.total_price == Decimal("150")
        assert rental.line_items[0].item_name == "balloon_arch"


class TestServiceFee:
    def test_fee_types(self):
        subtotal = Decimal("200")
        assert compute_service_fee(subtotal, ServiceFeeSettings()) == Decimal("10")
        assert compute_service_fee(subtotal, ServiceFeeSettings(type="fixed", fixed=Decimal("15"))) == Decimal("15")
        hybrid = ServiceFeeSettings(type="hybrid", percentage=Decimal("3"), fixed=Decimal("5"))
        assert compute_service_fee(subtotal, hybrid) == Decimal("11")
        assert compute_service_fee(subtotal, hybrid, waived=True) == Decimal("0")

    def test_snapshot_override(self, combo_order):
        combo_order.service_fee = ServiceFeeSettings(type="fixed", fixed=Decimal("12"))
        assert assemble_invoice(combo_order, DEFAULT_POLICY).invoice.service_fee == Decimal("12.00")


class TestValidationShortCircuit:
    def test_below_minimum_returns_no_invoice(self, make_catering, base_menu):
        snapshot = OrderSnapshot(
            services=[make_catering(menu_items=base_menu, minimum_order_amount="100")],
            selections={"item-a": 2},
        )
        result = assemble_invoice(snapshot, DEFAULT_POLICY)
        assert not result.ok
        assert result.invoice is None
        assert result.payload is None
        assert "requires a minimum order of $100.00" in result.validation.message


class TestDeliveryFees:
    """Delivery fees across recomputations"""

    def test_fee_is_sticky_across_recomputation(self, combo_order):
        first = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        combo_order.resolved_fees = first.resolved_fees
        combo_order.distance = Decimal("25")
        second = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert second.services[0].delivery_fee == Decimal("40")
        assert second.resolved_fees["cat-1"].range == "10-20 miles"

    def test_snapshot_fees_are_not_mutated(self, combo_order):
        fees = {}
        combo_order.resolved_fees = fees
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert fees == {}
        assert "cat-1" in invoice.resolved_fees

    def test_per_service_distance_wins(self, combo_order):
        combo_order.distances_by_service = {"cat-1": Decimal("3")}
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert invoice.services[0].delivery_fee == Decimal("25")

    def test_stale_fee_is_released(self, combo_order):
        combo_order.resolved_fees = {"cat-1": DeliveryRange("0-5 miles", Decimal("5"))}
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert invoice.resolved_fees["cat-1"].range == "10-20 miles"

    def test_no_distance_means_no_fee(self, combo_order):
        combo_order.distance = None
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        assert invoice.delivery_fees_total == Decimal("0.00")
        assert invoice.resolved_fees == {}

    def test_delivery_minimum_warning(self, combo_order):
        combo_order.services[0].delivery_options.delivery_minimum = Decimal("500")
        invoice = assemble_invoice(combo_order, DEFAULT_POLICY).invoice
        [warning] = invoice.delivery_minimum_warnings
        assert warning.required == Decimal("500")
        assert warning.current == Decimal("76")


class TestPayload:
    """Wire payload for the invoice-creation API"""

    def test_top_level_fields(self, combo_order):
        payload = assemble_invoice(combo_order, DEFAULT_POLICY).payload
        assert payload["eventName"] == "Launch Party"
        assert payload["contactName"] == "Sam"
        assert payload["guestCount"] == 10
        assert payload["addBackupContact"] is True
        assert payload["taxExemptStatus"] is False
        assert payload["customLineItems"] == [{
            "label": "Setup", "type": "fixed", "mode": "surcharge",
            "value": 20.0, "taxable": True, "statusForDrafting": False,
        }]

    def test_catering_service_entry(self, combo_order):
        catering = assemble_invoice(combo_order, DEFAULT_POLICY).payload["services"][0]
        assert catering["serviceType"] == "catering"
        assert catering["totalPrice"] == 76.0
        assert catering["deliveryFee"] == 40.0
        assert "price" not in catering
        assert "quantity" not in catering
        assert catering["deliveryRanges"][0] == {"range": "10-20 miles", "fee": 40.0}

        items = {item["cateringId"]: item for item in catering["cateringItems"]}
        assert items["item-a"]["totalPrice"] == 20.0
        assert items["combo1"]["totalPrice"] == 51.0
        assert items["combo1"]["price"] == 17.0
        assert items["guac"]["comboId"] == "combo1"
        assert items["guac"]["isComboCategoryItem"] is True
        assert items["guac"]["premiumCharge"] == 1.5
        assert "comboId" not in items["item-a"]

    def test_non_catering_service_entry(self, combo_order):
        venue = assemble_invoice(combo_order, DEFAULT_POLICY).payload["services"][1]
        assert venue == {
            "serviceType": "venues",
            "serviceName": "Loft Hall",
            "vendorId": "vendor-2",
            "totalPrice": 600.0,
            "priceType": "hourly",
            "price": 200.0,
            "quantity": 3,
        }

    def test_no_delivery_fee_key_without_fee(self, combo_order):
        combo_order.distance = None
        catering = assemble_invoice(combo_order, DEFAULT_POLICY).payload["services"][0]
        assert "deliveryFee" not in catering

    def test_composite_keys_never_leak(self, combo_order):
        text = serialize_payload(assemble_invoice(combo_order, DEFAULT_POLICY).payload)
        assert "combo1_prot_chicken" not in text
        assert "combo1_sides_guac" not in text

    def test_payload_is_plain_json(self, combo_order):
        result = assemble_invoice(combo_order, DEFAULT_POLICY)
        assert json.loads(serialize_payload(result.payload)) == result.payload
        assert build_invoice_payload(combo_order, result.invoice) == result.payload


class TestIdempotence:
    def test_same_snapshot_same_bytes(self, combo_order):
        before = copy.deepcopy(combo_order)
        first = serialize_payload(assemble_invoice(combo_order, DEFAULT_POLICY).payload)
        second = serialize_payload(assemble_invoice(combo_order, DEFAULT_POLICY).payload)
        assert first == second
        assert combo_order == before

    def test_uses_configured_policy_by_default(self, make_catering, base_menu):
        snapshot = OrderSnapshot(services=[make_catering(menu_items=base_menu)], selections={"item-a": 2})
        assert assemble_invoice(snapshot).invoice.service_fee == Decimal("1.00")
