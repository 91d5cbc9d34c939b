from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from ..dataclasses import (
    InvoiceLineItem,
    PerServiceSelections,
    ResolvedItem,
    ServiceInvoice,
    ServiceType,
    StaffDetails,
)
from .combo import is_placeholder, price_combo
from .policy import DEFAULT_POLICY, PricingPolicy
from .utils import ZERO

logger = logging.getLogger(__name__)


def assemble_service(
    selections: PerServiceSelections,
    guest_count: int,
    policy: PricingPolicy = DEFAULT_POLICY,
) -> ServiceInvoice:
    """
    Build the line items and total for one service.

    Catering totals are the sum of their priced lines; every other service
    type is a flat `price * quantity` and its lines are informational only.
    Delivery fees are attached later by the invoice assembler.
    """
    service = selections.service
    warnings: List[str] = []
    if service.service_type is ServiceType.CATERING:
        lines = _catering_lines(selections, guest_count, policy, warnings)
        total = sum((line.total_price for line in lines if not line.informational), ZERO)
    else:
        lines = _informational_lines(selections)
        total = service.price * service.quantity

    logger.debug(f"Service {service.id} ({service.service_type.value}): {len(lines)} lines, total {total}")
    return ServiceInvoice(service=service, total_price=total, line_items=lines, warnings=warnings)


def _base_line(service_name: str, resolved: ResolvedItem) -> InvoiceLineItem:
    item = resolved.item
    unit = item.price + item.additional_charge
    quantity = max(resolved.quantity, item.min_quantity)
    return InvoiceLineItem(
        menu_name=item.category or service_name,
        item_name=item.name or item.id,
        unit_price=unit,
        quantity=quantity,
        total_price=unit * quantity,
        catering_id=item.id,
        premium_charge=item.additional_charge if item.is_premium and item.additional_charge > ZERO else None,
    )


def _catering_lines(
    selections: PerServiceSelections,
    guest_count: int,
    policy: PricingPolicy,
    warnings: List[str],
) -> List[InvoiceLineItem]:
    service = selections.service
    lines = []

    for resolved in selections.base_items:
        item = resolved.item
        if policy.exclude_placeholder_items and is_placeholder(item.id, item.name, item.price + item.additional_charge):
            logger.debug(f"Excluding placeholder item {item.id} from service {service.id}")
            continue
        if resolved.quantity < item.min_quantity:
            logger.info(f"Raising {item.id} from {resolved.quantity} to its minimum of {item.min_quantity}")
        lines.append(_base_line(service.name, resolved))

    for combo in service.combos:
        priced = price_combo(
            combo,
            selections.combo_picks.get(combo.id, []),
            guest_count,
            direct_quantity=selections.combo_quantities.get(combo.id, 0),
            policy=policy,
        )
        if priced is None:
            continue
        warnings.extend(priced.warnings)
        lines.append(InvoiceLineItem(
            menu_name=combo.category or service.name,
            item_name=combo.name or combo.id,
            unit_price=priced.unit_price,
            quantity=priced.quantity,
            total_price=priced.total,
            catering_id=combo.id,
            premium_charge=priced.upcharge_total if priced.upcharge_total > ZERO else None,
        ))
        lines.extend(priced.category_line_items)

    return lines


def _informational_lines(selections: PerServiceSelections) -> List[InvoiceLineItem]:
    service = selections.service
    details = service.details
    minimum_hours = details.minimum_hours if isinstance(details, StaffDetails) else 1

    lines = []
    for resolved in selections.base_items:
        item = resolved.item
        quantity = max(resolved.quantity, item.min_quantity)
        total = item.price * quantity
        if service.service_type is ServiceType.STAFF:
            hours = max(resolved.hours or minimum_hours, minimum_hours)
            total = total * Decimal(hours)
        lines.append(InvoiceLineItem(
            menu_name=item.category or service.name,
            item_name=item.name or item.id,
            unit_price=item.price,
            quantity=quantity,
            total_price=total,
            catering_id=item.id,
            informational=True,
        ))
    return lines
