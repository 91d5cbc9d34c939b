"""
Delivery fee resolution

Vendors publish distance tiers such as "0-10 miles: $25". A catering service
gets the fee of the first tier whose ceiling covers the delivery distance.
Once a fee is resolved for a service it is sticky: recomputations hand it back
in and get it back unchanged, so a later distance lookup never re-prices a
delivery the buyer already saw.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ..dataclasses import DeliveryMinimumWarning, DeliveryOptions, DeliveryRange, Service
from .utils import ZERO, d

logger = logging.getLogger(__name__)

DEFAULT_MAX_MILES = 100

_DASHES = re.compile(r"[–—−]")
_UNITS = re.compile(r"\bmi(?:les)?\b")
_RANGE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:-\s*(\d+(?:\.\d+)?))?")


def parse_distance_from_range(label: str, max_miles: int = DEFAULT_MAX_MILES) -> Tuple[Decimal, Decimal]:
    """
    Parse "0-10 miles", "10–15 mi" or "25" into (min, max) miles.

    A single number is both bounds. The ceiling is capped at `max_miles`;
    unparseable labels give (0, 0).
    """
    if not label:
        return ZERO, ZERO
    text = _UNITS.sub("", _DASHES.sub("-", str(label).lower()))
    match = _RANGE.search(text)
    if not match:
        return ZERO, ZERO
    low = d(match.group(1))
    high = d(match.group(2)) if match.group(2) else low
    return low, min(high, Decimal(max_miles))


def _ordered_tiers(ranges: Iterable[DeliveryRange], max_miles: int) -> List[Tuple[Decimal, DeliveryRange]]:
    tiers = [(parse_distance_from_range(r.range, max_miles)[1], r) for r in ranges]
    tiers = [(ceiling, r) for ceiling, r in tiers if ceiling > ZERO]
    return sorted(tiers, key=lambda t: t[0])


def resolve_fee(
    distance: Optional[Decimal],
    delivery_options: Optional[DeliveryOptions],
    already_resolved: Optional[DeliveryRange] = None,
    max_miles: int = DEFAULT_MAX_MILES,
) -> Optional[DeliveryRange]:
    """
    Pick the delivery tier for `distance`.

    Returns `already_resolved` unchanged when given. Otherwise None when the
    vendor does not deliver, no distance is known, or no tier covers it.
    """
    if already_resolved is not None:
        return already_resolved
    if delivery_options is None or not delivery_options.delivery:
        return None
    if distance is None:
        logger.debug("No delivery distance known, leaving fee unresolved")
        return None

    distance = d(distance)
    for ceiling, tier in _ordered_tiers(delivery_options.delivery_ranges, max_miles):
        if distance <= ceiling:
            logger.debug(f"Distance {distance} mi falls in tier {tier.range!r} (fee {tier.fee})")
            return tier

    logger.info(f"Distance {distance} mi is beyond every delivery tier")
    return None


def _still_offered(fee: DeliveryRange, options: Optional[DeliveryOptions]) -> bool:
    if options is None or not options.delivery:
        return False
    return any(r.range == fee.range and r.fee == fee.fee for r in options.delivery_ranges)


def release_stale_fees(
    resolved_fees: Dict[str, DeliveryRange],
    services: Iterable[Service],
) -> Dict[str, DeliveryRange]:
    """
    Copy of `resolved_fees` keeping only fees the vendor still offers.

    A sticky fee is released when its service left the order, the vendor
    stopped delivering, or its tier (label and fee) is gone.
    """
    by_id = {s.id: s for s in services}
    kept = {}
    for service_id, fee in (resolved_fees or {}).items():
        service = by_id.get(service_id)
        if service is not None and _still_offered(fee, service.delivery_options):
            kept[service_id] = fee
        else:
            logger.info(f"Releasing stale delivery fee {fee.range!r} for service {service_id}")
    return kept


def check_delivery_minimum(service: Service, service_total: Decimal) -> Optional[DeliveryMinimumWarning]:
    options = service.delivery_options
    if options is None or not options.delivery or options.delivery_minimum <= ZERO:
        return None
    if service_total >= options.delivery_minimum:
        return None
    return DeliveryMinimumWarning(
        service_id=service.id,
        vendor=service.name or "Unknown Vendor",
        required=options.delivery_minimum,
        current=service_total,
    )
