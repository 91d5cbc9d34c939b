from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from ..dataclasses import AdjustmentLine, AdjustmentMode, AdjustmentResult, AdjustmentType, CustomAdjustment
from .utils import HUNDRED, ZERO, d

logger = logging.getLogger(__name__)


def adjustment_amount(subtotal: Decimal, adjustment: CustomAdjustment) -> Decimal:
    """Signed amount of one adjustment; discounts are negative."""
    if adjustment.type is AdjustmentType.PERCENTAGE:
        amount = d(subtotal) * adjustment.value / HUNDRED
    else:
        amount = adjustment.value
    return -amount if adjustment.mode is AdjustmentMode.DISCOUNT else amount


def apply_adjustments(subtotal: Decimal, adjustments: Iterable[CustomAdjustment]) -> AdjustmentResult:
    """
    Apply admin adjustments to the services subtotal.

    Every adjustment is computed against the same `subtotal`; they never
    compound. Delivery fees are not part of that base.
    """
    result = AdjustmentResult()
    for adjustment in adjustments:
        amount = adjustment_amount(subtotal, adjustment)
        result.breakdown.append(AdjustmentLine(
            label=adjustment.label,
            amount=amount,
            taxable=adjustment.taxable,
            mode=adjustment.mode,
            type=adjustment.type,
            value=adjustment.value,
        ))
        if adjustment.taxable:
            result.taxable_total += amount
        else:
            result.non_taxable_total += amount

    result.adjustments_total = result.taxable_total + result.non_taxable_total
    if result.breakdown:
        logger.debug(f"Applied {len(result.breakdown)} adjustments to {subtotal}: {result.adjustments_total}")
    return result
