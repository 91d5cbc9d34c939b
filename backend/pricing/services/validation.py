from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from ..dataclasses import CateringDetails, Service, ServiceInvoice, ValidationResult
from .utils import ZERO

logger = logging.getLogger(__name__)

MINIMUM_GUESTS = "minimum_guests"
MINIMUM_ORDER_AMOUNT = "minimum_order_amount"


def validate(service: Service, guest_count: int, computed_service_total: Decimal) -> ValidationResult:
    """
    Check a catering service against its vendor's minimums.

    `computed_service_total` is the service's own line-item total, before
    delivery and before order-level adjustments. Other service types always
    pass.
    """
    if not isinstance(service.details, CateringDetails):
        return ValidationResult()

    details = service.details
    name = service.name or "This service"

    if details.minimum_guests > 0 and guest_count < details.minimum_guests:
        return ValidationResult(
            ok=False,
            code=MINIMUM_GUESTS,
            service_id=service.id,
            service_name=name,
            threshold=Decimal(details.minimum_guests),
            actual=Decimal(guest_count),
            message=f"{name} requires at least {details.minimum_guests} guests. You entered {guest_count} guests.",
        )

    minimum = details.minimum_order_amount
    if minimum > ZERO and computed_service_total < minimum:
        return ValidationResult(
            ok=False,
            code=MINIMUM_ORDER_AMOUNT,
            service_id=service.id,
            service_name=name,
            threshold=minimum,
            actual=computed_service_total,
            message=(
                f"{name} requires a minimum order of ${minimum:.2f}. "
                f"Your current total is ${computed_service_total:.2f}."
            ),
        )

    return ValidationResult()


def validate_order(service_invoices: Iterable[ServiceInvoice], guest_count: int) -> ValidationResult:
    """Run the minimum gates over every service; the first failure wins."""
    for invoice in service_invoices:
        result = validate(invoice.service, guest_count, invoice.total_price)
        if not result.ok:
            logger.info(f"Order rejected: {result.message}")
            return result
    return ValidationResult()
