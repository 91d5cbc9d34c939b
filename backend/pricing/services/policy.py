"""
Pricing policy configuration

Loads, validates and caches the JSON policy that parameterizes the order
engine: service fee settings, how combo "protein" categories are recognised,
delivery distance caps and the defensive policies applied to incomplete
catalog data.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from decimal import InvalidOperation
from typing import List, Optional, Pattern

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from ..dataclasses import ServiceFeeSettings
from .utils import d

logger = logging.getLogger(__name__)

VALID_SERVICE_FEE_TYPES = {"percentage", "fixed", "hybrid"}


class PricingPolicyError(Exception):
    """Base exception for pricing policy related errors"""
    pass


class ConfigurationError(PricingPolicyError):
    """Raised when the policy file cannot be found or parsed"""
    pass


class PolicyValidationError(PricingPolicyError):
    """Raised when the policy file is structurally invalid"""
    pass


@dataclass
class PricingPolicy:
    """Typed view over the policy JSON used by the engine modules"""
    version: str = "1.0"
    service_fee: ServiceFeeSettings = field(default_factory=ServiceFeeSettings)
    protein_category_keywords: List[str] = field(default_factory=lambda: ["protein", "meat", "main"])
    max_delivery_miles: int = 100
    exclude_placeholder_items: bool = True
    synthesize_unmatched_rental_items: bool = True

    @property
    def protein_pattern(self) -> Pattern:
        alternatives = "|".join(re.escape(k) for k in self.protein_category_keywords)
        return re.compile(alternatives or r"(?!)", re.IGNORECASE)

    def is_protein_category(self, name: str, selection_behavior: Optional[str] = None) -> bool:
        if selection_behavior:
            return selection_behavior == "quantity"
        normalized = (name or "").lower().replace("protien", "protein")
        return bool(self.protein_pattern.search(normalized))


DEFAULT_POLICY = PricingPolicy()


def load_pricing_policy(config_path: str = None) -> dict:
    """
    Load the pricing policy from a JSON configuration file

    Args:
        config_path: Path to the policy JSON file. If None, uses the
            PRICING_POLICY_PATH setting, then the bundled default.

    Returns:
        dict: Parsed policy configuration

    Raises:
        ConfigurationError: If the file cannot be loaded or parsed
    """
    if config_path is None:
        config_path = _configured_policy_path()

    try:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Pricing policy configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            rules = json.load(f)

        logger.info(f"Successfully loaded pricing policy from {config_path}")
        return rules

    except ConfigurationError:
        raise
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in pricing policy file: {e}")
    except Exception as e:
        raise ConfigurationError(f"Error loading pricing policy configuration: {e}")


def validate_pricing_policy(rules: dict) -> List[str]:
    """
    Validate that a pricing policy is complete and consistent

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    for key in ('version', 'service_fee', 'combo', 'delivery'):
        if key not in rules:
            errors.append(f"Missing required top-level key: {key}")

    fee = rules.get('service_fee')
    if isinstance(fee, dict):
        fee_type = fee.get('type', 'percentage')
        if fee_type not in VALID_SERVICE_FEE_TYPES:
            errors.append(f"Unknown service fee type: {fee_type}")
        for amount_key in ('percentage', 'fixed'):
            if amount_key in fee and not _is_non_negative_number(fee[amount_key]):
                errors.append(f"service_fee.{amount_key} must be a non-negative number")
    elif fee is not None:
        errors.append("service_fee must be an object")

    combo = rules.get('combo')
    if isinstance(combo, dict):
        keywords = combo.get('protein_category_keywords')
        if not isinstance(keywords, list) or not keywords:
            errors.append("combo.protein_category_keywords must be a non-empty list")
        elif not all(isinstance(k, str) and k.strip() for k in keywords):
            errors.append("combo.protein_category_keywords entries must be non-empty strings")
    elif combo is not None:
        errors.append("combo must be an object")

    delivery = rules.get('delivery')
    if isinstance(delivery, dict):
        max_miles = delivery.get('max_distance_miles')
        if max_miles is not None and (not _is_non_negative_number(max_miles) or max_miles == 0):
            errors.append("delivery.max_distance_miles must be a positive number")
    elif delivery is not None:
        errors.append("delivery must be an object")

    if not errors:
        logger.info("Pricing policy validation passed")
    else:
        logger.warning(f"Pricing policy validation found {len(errors)} errors")

    return errors


def policy_from_rules(rules: dict) -> PricingPolicy:
    """Build the typed policy from a validated rules dict"""
    fee = rules.get('service_fee', {})
    combo = rules.get('combo', {})
    delivery = rules.get('delivery', {})
    catalog = rules.get('catalog', {})

    return PricingPolicy(
        version=str(rules.get('version', '1.0')),
        service_fee=ServiceFeeSettings(
            type=fee.get('type', 'percentage'),
            percentage=d(fee.get('percentage', '5.0')),
            fixed=d(fee.get('fixed', '0')),
        ),
        protein_category_keywords=list(
            combo.get('protein_category_keywords', DEFAULT_POLICY.protein_category_keywords)
        ),
        max_delivery_miles=int(delivery.get('max_distance_miles', DEFAULT_POLICY.max_delivery_miles)),
        exclude_placeholder_items=bool(catalog.get('exclude_placeholder_items', True)),
        synthesize_unmatched_rental_items=bool(catalog.get('synthesize_unmatched_rental_items', True)),
    )


# Convenience functions for common operations

def get_pricing_policy() -> PricingPolicy:
    """Get a cached instance of the pricing policy (singleton pattern)"""
    if not hasattr(get_pricing_policy, '_cached_policy'):
        rules = load_pricing_policy()

        validation_errors = validate_pricing_policy(rules)
        if validation_errors:
            logger.error(f"Pricing policy validation failed: {validation_errors}")
            raise PolicyValidationError(f"Pricing policy validation failed: {validation_errors}")

        get_pricing_policy._cached_policy = policy_from_rules(rules)

    return get_pricing_policy._cached_policy


def clear_pricing_policy_cache():
    """Clear the cached policy (useful for testing or config updates)"""
    if hasattr(get_pricing_policy, '_cached_policy'):
        delattr(get_pricing_policy, '_cached_policy')


def _configured_policy_path() -> Path:
    """PRICING_POLICY_PATH from Django settings when configured, else the bundled file"""
    try:
        configured = getattr(settings, 'PRICING_POLICY_PATH', None)
    except ImproperlyConfigured:
        configured = None
    if configured:
        return Path(configured)
    return Path(__file__).parent.parent / "config" / "pricing_policy.json"


def _is_non_negative_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    try:
        return d(value) >= 0
    except (InvalidOperation, ValueError):
        return False
