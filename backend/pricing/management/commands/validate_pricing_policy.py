from django.core.management.base import BaseCommand
from pricing.services.policy import (
    PricingPolicyError,
    load_pricing_policy,
    policy_from_rules,
    validate_pricing_policy,
)

class Command(BaseCommand):
    help = "Validates the pricing policy JSON (service fee, combo keywords, delivery caps)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--path",
            dest="path",
            default=None,
            help="Policy file to check. Defaults to PRICING_POLICY_PATH or the bundled policy.",
        )

    def handle(self, *args, **options):
        self.stdout.write("Starting validation of the pricing policy...")

        try:
            rules = load_pricing_policy(options.get("path"))
        except PricingPolicyError as e:
            self.stdout.write(self.style.ERROR(f"Could not load pricing policy: {e}"))
            return

        errors = validate_pricing_policy(rules)
        if errors:
            self.stdout.write(self.style.WARNING(f"--- Policy version {rules.get('version', '?')} ---"))
            for error in errors:
                self.stdout.write(f"  - {error}")
            self.stdout.write("-" * 20)
            self.stdout.write(self.style.ERROR(f"\nValidation complete. Found {len(errors)} issues."))
            return

        policy = policy_from_rules(rules)
        self.stdout.write(
            f"Service fee: {policy.service_fee.type} "
            f"({policy.service_fee.percentage}% + {policy.service_fee.fixed})"
        )
        self.stdout.write(f"Protein categories: {', '.join(policy.protein_category_keywords)}")
        self.stdout.write(f"Max delivery distance: {policy.max_delivery_miles} miles")
        self.stdout.write("-" * 20)
        self.stdout.write(self.style.SUCCESS(f"\nValidation complete. Policy version {policy.version} looks good."))
