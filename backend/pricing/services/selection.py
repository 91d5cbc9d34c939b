"""
Selection model

Decodes the booking form's selection map (composite string keys to
quantities) into explicit `BaseSelection | DurationSelection | ComboSelection`
values, then partitions them per service.

Wire keys:
    itemId                      base item
    serviceId_itemId            base item bound to one service
    itemId_duration             staff hours for an item
    serviceId_duration          staff hours for the whole service
    comboId_categoryId_itemId   combo category pick
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Tuple

from ..dataclasses import (
    BaseSelection,
    ComboPick,
    ComboSelection,
    DurationSelection,
    PerServiceSelections,
    ResolvedItem,
    SelectableItem,
    Selection,
    Service,
    ServiceType,
)
from .policy import DEFAULT_POLICY, PricingPolicy
from .utils import to_quantity

logger = logging.getLogger(__name__)

DURATION_SUFFIX = "_duration"
SELECTION_TYPES = (BaseSelection, DurationSelection, ComboSelection)


def _split_service_prefix(key: str, service_ids: Sequence[str]) -> Tuple[Optional[str], str]:
    # Longest id first so "svc-1" never shadows "svc-10".
    for service_id in sorted(service_ids, key=len, reverse=True):
        prefix = f"{service_id}_"
        if service_id and key.startswith(prefix) and len(key) > len(prefix):
            return service_id, key[len(prefix):]
    return None, key


def parse_selection_key(
    key: str,
    quantity,
    combo_ids: Iterable[str] = (),
    service_ids: Sequence[str] = (),
    catalog_keys: Collection[str] = (),
) -> Optional[Selection]:
    """
    Decode one composite key. Returns None for quantities below 1, which
    mean "not selected".

    A key naming a catalog item outright is read as that item before any
    `serviceId_` prefix is stripped, so ids like "cat_fish" on service "cat"
    survive.
    """
    qty = to_quantity(quantity)
    if qty < 1 or not key:
        return None
    combo_ids = set(combo_ids)

    if key in catalog_keys:
        return BaseSelection(item_id=key, quantity=qty)

    if key.endswith(DURATION_SUFFIX):
        target = key[: -len(DURATION_SUFFIX)]
        if target in catalog_keys:
            return DurationSelection(item_id=target, hours=qty)
        if target in service_ids:
            return DurationSelection(item_id=target, hours=qty, service_id=target)
        service_id, item_id = _split_service_prefix(target, service_ids)
        return DurationSelection(item_id=item_id, hours=qty, service_id=service_id)

    service_id, rest = _split_service_prefix(key, service_ids)
    parts = rest.split("_")
    if len(parts) >= 3 and parts[0] in combo_ids:
        return ComboSelection(
            combo_id=parts[0],
            category_id=parts[1],
            item_id="_".join(parts[2:]),
            quantity=qty,
        )
    # Anything else is a base item; ids containing underscores land here too.
    return BaseSelection(item_id=rest, quantity=qty, service_id=service_id)


def decode_selections(selection_map, services: Sequence[Service]) -> List[Selection]:
    """Accepts a wire map, a map keyed by structured selections, or a list of them."""
    combo_ids = {combo.id for service in services for combo in service.combos}
    service_ids = [service.id for service in services]
    catalog_keys = {key for service in services for item in service.catalog for key in (item.id, item.name) if key}

    if not isinstance(selection_map, Mapping):
        return [s for s in (selection_map or []) if isinstance(s, SELECTION_TYPES)]

    decoded = []
    for key, quantity in selection_map.items():
        if isinstance(key, SELECTION_TYPES):
            decoded.append(key)
            continue
        selection = parse_selection_key(str(key), quantity, combo_ids, service_ids, catalog_keys)
        if selection is not None:
            decoded.append(selection)
    return decoded


def _find(catalog: Iterable[SelectableItem], item_id: str) -> Optional[SelectableItem]:
    """Match on id, falling back to the display name older forms keyed by."""
    catalog = list(catalog)
    found = next((item for item in catalog if item.id == item_id), None)
    if found is None:
        found = next((item for item in catalog if item.name and item.name == item_id), None)
    return found


def resolve(
    selection_map,
    services: Sequence[Service],
    policy: PricingPolicy = DEFAULT_POLICY,
) -> List[PerServiceSelections]:
    """
    Partition selections per service into base items, durations and combo picks.

    Unprefixed base keys are claimed by every service whose catalog holds the
    id (or, failing that, an item of that display name); a `serviceId_` prefix
    binds the key to that service alone and wins over a bare key for the same
    item. Keys no service claims become
    zero-price lines on a party-rental service (items added outside the
    catalog), or are dropped and reported on the first bucket's `dropped`.
    """
    buckets: Dict[str, PerServiceSelections] = {s.id: PerServiceSelections(service=s) for s in services}
    combo_owner = {combo.id: service for service in services for combo in service.combos}
    quantities: Dict[str, Dict[str, Tuple[int, bool]]] = {s.id: {} for s in services}
    unmatched: List[BaseSelection] = []
    dropped: List[str] = []

    for selection in decode_selections(selection_map, services):
        if isinstance(selection, ComboSelection):
            owner = combo_owner.get(selection.combo_id)
            if owner is None:
                dropped.append(f"{selection.combo_id}_{selection.category_id}_{selection.item_id}")
                continue
            combo = next(c for c in owner.combos if c.id == selection.combo_id)
            category = combo.find_category(selection.category_id)
            item = category.find_item(selection.item_id) if category else None
            buckets[owner.id].combo_picks.setdefault(combo.id, []).append(
                ComboPick(category=category, item=item, item_id=selection.item_id, quantity=selection.quantity)
            )

        elif isinstance(selection, DurationSelection):
            claimed = False
            for service in services:
                if selection.service_id and selection.service_id != service.id:
                    continue
                if selection.item_id == service.id:
                    buckets[service.id].durations[service.id] = selection.hours
                    claimed = True
                    continue
                item = _find(service.catalog, selection.item_id)
                if item is not None:
                    buckets[service.id].durations[item.id] = selection.hours
                    claimed = True
            if not claimed:
                dropped.append(f"{selection.item_id}{DURATION_SUFFIX}")

        else:
            if selection.item_id in combo_owner and (
                selection.service_id in (None, combo_owner[selection.item_id].id)
            ):
                owner = combo_owner[selection.item_id]
                buckets[owner.id].combo_quantities[selection.item_id] = selection.quantity
                continue

            claimed = False
            for service in services:
                if selection.service_id and selection.service_id != service.id:
                    continue
                item = _find(service.catalog, selection.item_id)
                if item is None:
                    continue
                claimed = True
                if item.is_combo:
                    buckets[service.id].combo_quantities[item.id] = selection.quantity
                    continue
                bound = selection.service_id is not None
                current = quantities[service.id].get(item.id)
                if current is None or bound or not current[1]:
                    quantities[service.id][item.id] = (selection.quantity, bound)
            if not claimed:
                unmatched.append(selection)

    for service in services:
        bucket = buckets[service.id]
        chosen = quantities[service.id]
        for item in service.catalog:
            if item.id in chosen and not item.is_combo:
                bucket.base_items.append(ResolvedItem(
                    item=item,
                    quantity=chosen[item.id][0],
                    hours=_hours_for(bucket, item) if service.service_type is ServiceType.STAFF else None,
                ))

    for selection in sorted(unmatched, key=lambda s: (s.service_id or "", s.item_id)):
        target = _rental_target(selection, services) if policy.synthesize_unmatched_rental_items else None
        if target is None:
            logger.warning(f"Dropping selection {selection.item_id!r}: no service offers this item")
            dropped.append(selection.item_id)
            continue
        logger.debug(f"Synthesizing zero-price rental item {selection.item_id!r} on service {target.id}")
        buckets[target.id].base_items.append(ResolvedItem(
            item=SelectableItem(id=selection.item_id, name=selection.item_id),
            quantity=selection.quantity,
            synthesized=True,
        ))

    resolved = [buckets[s.id] for s in services]
    if resolved:
        resolved[0].dropped.extend(dropped)
    elif dropped:
        logger.warning(f"Dropping {len(dropped)} selections: order has no services")
    return resolved


def _hours_for(bucket: PerServiceSelections, item: SelectableItem) -> Optional[int]:
    if item.id in bucket.durations:
        return bucket.durations[item.id]
    return bucket.durations.get(bucket.service.id)


def _rental_target(selection: BaseSelection, services: Sequence[Service]) -> Optional[Service]:
    rentals = [s for s in services if s.service_type is ServiceType.PARTY_RENTAL]
    if selection.service_id is not None:
        return next((s for s in rentals if s.id == selection.service_id), None)
    return rentals[0] if rentals else None


def dropped_selections(resolved: Iterable[PerServiceSelections]) -> List[str]:
    return [key for bucket in resolved for key in bucket.dropped]
