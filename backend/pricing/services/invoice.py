"""
Invoice assembly

Single entry point for pricing an order: takes an `OrderSnapshot` and
returns either a validation failure or the full invoice plus the wire
payload the invoice-creation API consumes. The computation is pure: the
snapshot is never mutated and the same snapshot always yields the same
invoice.
"""
from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from django.core.serializers.json import DjangoJSONEncoder

from ..dataclasses import (
    AssemblyResult,
    Invoice,
    InvoiceLineItem,
    OrderSnapshot,
    ServiceFeeSettings,
    ServiceInvoice,
)
from .adjustments import apply_adjustments
from .delivery import check_delivery_minimum, release_stale_fees, resolve_fee
from .line_items import assemble_service
from .policy import PricingPolicy, get_pricing_policy
from .selection import dropped_selections, resolve
from .utils import HUNDRED, ZERO, d, money, money_float
from .validation import validate_order

logger = logging.getLogger(__name__)


def compute_service_fee(subtotal: Decimal, fee: ServiceFeeSettings, waived: bool = False) -> Decimal:
    if waived:
        return ZERO
    percentage_part = subtotal * fee.percentage / HUNDRED
    if fee.type == "fixed":
        return fee.fixed
    if fee.type == "hybrid":
        return percentage_part + fee.fixed
    return percentage_part


def assemble_invoice(snapshot: OrderSnapshot, policy: Optional[PricingPolicy] = None) -> AssemblyResult:
    """
    Price an order snapshot.

    Steps: resolve selections, build per-service line items, run the
    minimum-order gates (abort on the first failure), resolve delivery fees,
    then apply adjustments, service fee, tip and tax to the aggregate.
    """
    policy = policy or get_pricing_policy()
    services = list(snapshot.services)
    guest_count = snapshot.guest_count

    resolved = resolve(snapshot.selections, services, policy)
    service_invoices = [assemble_service(bucket, guest_count, policy) for bucket in resolved]

    validation = validate_order(service_invoices, guest_count)
    if not validation.ok:
        return AssemblyResult(validation=validation)

    resolved_fees = release_stale_fees(snapshot.resolved_fees, services)
    warnings = []
    for service_invoice in service_invoices:
        service = service_invoice.service
        if not service.is_catering:
            continue
        distance = snapshot.distances_by_service.get(service.id, snapshot.distance)
        tier = resolve_fee(distance, service.delivery_options, resolved_fees.get(service.id), policy.max_delivery_miles)
        if tier is None:
            continue
        resolved_fees[service.id] = tier
        service_invoice.delivery_range = tier
        if tier.fee > ZERO:
            service_invoice.delivery_fee = tier.fee
        warning = check_delivery_minimum(service, service_invoice.total_price)
        if warning is not None:
            logger.info(f"{warning.vendor} is below its delivery minimum of {warning.required}")
            warnings.append(warning)

    # Every reported component is rounded to cents before it is summed, so the
    # parts always add up to the grand total.
    raw_subtotal = sum((s.total_price for s in service_invoices), ZERO)
    subtotal = money(raw_subtotal)
    adjustments = apply_adjustments(raw_subtotal, snapshot.adjustments)
    adjustments_total = money(adjustments.adjustments_total)
    service_fee = money(compute_service_fee(
        raw_subtotal, snapshot.service_fee or policy.service_fee, snapshot.waive_service_fee
    ))
    delivery_total = money(sum((s.delivery_fee or ZERO for s in service_invoices), ZERO))
    tip = money(d(snapshot.tip or 0))

    tax = ZERO
    tax_rate = d(snapshot.tax_rate or 0)
    if tax_rate > ZERO and not snapshot.tax_exempt:
        taxable_base = subtotal + service_fee + delivery_total + money(adjustments.taxable_total)
        tax = money(taxable_base * tax_rate)

    grand_total = subtotal + adjustments_total + service_fee + delivery_total + tip + tax

    invoice = Invoice(
        services=service_invoices,
        subtotal=subtotal,
        adjustments_total=adjustments_total,
        adjustments=adjustments.breakdown,
        service_fee=service_fee,
        delivery_fees_total=delivery_total,
        tip=tip,
        tax=tax,
        grand_total=grand_total,
        resolved_fees=resolved_fees,
        dropped_selections=dropped_selections(resolved),
        delivery_minimum_warnings=warnings,
    )
    logger.info(
        f"Invoice for {len(service_invoices)} services: subtotal {invoice.subtotal}, "
        f"grand total {invoice.grand_total}"
    )
    return AssemblyResult(validation=validation, invoice=invoice, payload=build_invoice_payload(snapshot, invoice))


# --------------------------- Wire payload ---------------------------

def _catering_item_payload(line: InvoiceLineItem) -> Dict[str, Any]:
    item = {
        "menuName": line.menu_name,
        "menuItemName": line.item_name,
        "price": money_float(line.unit_price),
        "quantity": line.quantity,
        "totalPrice": money_float(line.total_price),
        "cateringId": line.catering_id,
        "isComboCategoryItem": line.is_combo_category_item,
    }
    if line.parent_combo_id:
        item["comboId"] = line.parent_combo_id
    if line.premium_charge is not None:
        item["premiumCharge"] = money_float(line.premium_charge)
    return item


def _service_payload(service_invoice: ServiceInvoice) -> Dict[str, Any]:
    service = service_invoice.service
    payload = {
        "serviceType": service.service_type.wire_name,
        "serviceName": service.name,
        "vendorId": service.vendor_id,
        "totalPrice": money_float(service_invoice.total_price),
        "priceType": service.price_type,
    }
    if service.is_catering:
        payload["cateringItems"] = [_catering_item_payload(line) for line in service_invoice.line_items]
        if service_invoice.delivery_fee is not None and service_invoice.delivery_fee > ZERO:
            payload["deliveryFee"] = money_float(service_invoice.delivery_fee)
        options = service.delivery_options
        if options is not None and options.delivery_ranges:
            payload["deliveryRanges"] = [
                {"range": r.range, "fee": money_float(r.fee)} for r in options.delivery_ranges
            ]
    else:
        payload["price"] = money_float(service.price)
        payload["quantity"] = service.quantity
    return payload


def build_invoice_payload(snapshot: OrderSnapshot, invoice: Invoice) -> Dict[str, Any]:
    """Flatten an invoice into the camelCase payload of the invoice-creation API."""
    event = snapshot.event
    return {
        "eventName": event.event_name,
        "companyName": event.company_name,
        "eventLocation": event.event_location,
        "eventDate": event.event_date,
        "serviceTime": event.service_time,
        "guestCount": snapshot.guest_count,
        "contactName": event.contact_name,
        "phoneNumber": event.phone_number,
        "emailAddress": event.email_address,
        "additionalNotes": event.additional_notes,
        "addBackupContact": event.add_backup_contact,
        "taxExemptStatus": snapshot.tax_exempt,
        "waiveServiceFee": snapshot.waive_service_fee,
        "services": [_service_payload(s) for s in invoice.services],
        "customLineItems": [
            {
                "label": adj.label,
                "type": adj.type.value,
                "mode": adj.mode.value,
                "value": money_float(adj.value),
                "taxable": adj.taxable,
                "statusForDrafting": adj.status_for_drafting,
            }
            for adj in snapshot.adjustments
        ],
    }


def resolved_fees_payload(invoice: Invoice) -> Dict[str, Dict[str, Any]]:
    return {
        service_id: {"range": tier.range, "fee": money_float(tier.fee)}
        for service_id, tier in invoice.resolved_fees.items()
    }


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Canonical JSON for a payload; equal snapshots give byte-identical output."""
    return json.dumps(payload, cls=DjangoJSONEncoder, sort_keys=True, separators=(",", ":"))
