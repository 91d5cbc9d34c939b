from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from typing import List, Optional

from ..dataclasses import ComboDefinition, ComboPick, ComboPrice, InvoiceLineItem
from .policy import DEFAULT_POLICY, PricingPolicy
from .utils import ZERO, is_uuid_like

logger = logging.getLogger(__name__)


def is_placeholder(item_id: str, name: Optional[str], price: Decimal) -> bool:
    """A bare UUID with nothing to show for it: no name and no price."""
    return is_uuid_like(item_id) and not name and price == ZERO


def _is_placeholder_pick(pick: ComboPick) -> bool:
    name = pick.item.name if pick.item else None
    return is_placeholder(pick.item_id, name, pick.price)


def price_combo(
    combo: ComboDefinition,
    category_selections: List[ComboPick],
    guest_count: int,
    direct_quantity: int = 0,
    policy: PricingPolicy = DEFAULT_POLICY,
) -> Optional[ComboPrice]:
    """
    Price one combo from its category picks.

    The combo base price is charged once per protein portion; every selected
    category item adds its upcharge once per guest:

        total = base_price * protein_qty + sum(upcharge_i * guest_count)

    Category line items are display-only and never reconcile to the total.
    Returns None when nothing was selected for the combo.
    """
    picks = []
    for pick in category_selections:
        if pick.quantity <= 0:
            continue
        if policy.exclude_placeholder_items and _is_placeholder_pick(pick):
            logger.debug(f"Excluding placeholder pick {pick.item_id} from combo {combo.id}")
            continue
        picks.append(pick)

    protein_qty = sum(
        pick.quantity
        for pick in picks
        if policy.is_protein_category(
            pick.category_name, pick.category.selection_behavior if pick.category else None
        )
    )
    quantity = protein_qty or max(direct_quantity, 0)
    if quantity <= 0 and not picks:
        return None
    quantity = max(quantity, 1)

    guests = Decimal(max(guest_count or 0, 0))
    base_total = combo.price * quantity
    upcharge_total = sum((pick.additional_charge * guests for pick in picks), ZERO)
    total = base_total + upcharge_total

    category_lines = [
        InvoiceLineItem(
            menu_name=pick.category_name,
            item_name=pick.item_name,
            unit_price=pick.price,
            quantity=pick.quantity,
            total_price=pick.price * pick.quantity,
            catering_id=pick.item_id,
            parent_combo_id=combo.id,
            is_combo_category_item=True,
            premium_charge=pick.additional_charge if pick.additional_charge > ZERO else None,
            informational=True,
        )
        for pick in picks
    ]

    logger.debug(
        f"Combo {combo.id}: qty={quantity} base={base_total} upcharge={upcharge_total} total={total}"
    )
    return ComboPrice(
        combo_id=combo.id,
        quantity=quantity,
        unit_price=total / quantity,
        base_total=base_total,
        upcharge_total=upcharge_total,
        total=total,
        category_line_items=category_lines,
        warnings=_selection_warnings(combo, picks),
    )


def _selection_warnings(combo: ComboDefinition, picks: List[ComboPick]) -> List[str]:
    # Overruns are priced as selected; the vendor sees the warning.
    warnings = []
    counts = Counter(pick.category.id for pick in picks if pick.category is not None)
    for category in combo.categories:
        selected = counts.get(category.id, 0)
        if category.selection_behavior == "quantity" or category.max_selections <= 0:
            continue
        if selected > category.max_selections:
            message = (
                f"{combo.name or combo.id}: {category.name} allows {category.max_selections} "
                f"selection(s), {selected} selected"
            )
            logger.warning(message)
            warnings.append(message)
    return warnings
