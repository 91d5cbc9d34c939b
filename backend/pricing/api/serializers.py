from decimal import Decimal

from rest_framework import serializers

from pricing.services.policy import VALID_SERVICE_FEE_TYPES


# ---------- REQUEST ----------
class DeliveryRangeSerializer(serializers.Serializer):
    range = serializers.CharField(max_length=255)
    fee = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class ServiceFeeSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=sorted(VALID_SERVICE_FEE_TYPES), default="percentage")
    percentage = serializers.DecimalField(max_digits=6, decimal_places=3, min_value=0, default=Decimal("5.0"))
    fixed = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=Decimal("0"))


class EventDetailsSerializer(serializers.Serializer):
    eventName = serializers.CharField(required=False, allow_blank=True, default="Booking Event")
    companyName = serializers.CharField(required=False, allow_blank=True, default="")
    eventLocation = serializers.CharField(required=False, allow_blank=True, default="")
    eventDate = serializers.CharField(required=False, allow_blank=True, default="")
    serviceTime = serializers.CharField(required=False, allow_blank=True, default="")
    contactName = serializers.CharField(required=False, allow_blank=True, default="")
    phoneNumber = serializers.CharField(required=False, allow_blank=True, default="")
    emailAddress = serializers.CharField(required=False, allow_blank=True, default="")
    additionalNotes = serializers.CharField(required=False, allow_blank=True, default="")
    addBackupContact = serializers.BooleanField(required=False, default=False)


class InvoiceComputeRequestSerializer(serializers.Serializer):
    # Service records and adjustments keep their loose wire shape; the catalog
    # normalizer owns their parsing.
    services = serializers.ListField(child=serializers.DictField(), allow_empty=True)
    selectedItems = serializers.DictField(child=serializers.IntegerField(min_value=0), required=False, default=dict)
    guestCount = serializers.IntegerField(min_value=0, required=False, default=1)
    customAdjustments = serializers.ListField(child=serializers.DictField(), required=False, default=list)
    distanceMiles = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True, default=None
    )
    distancesByService = serializers.DictField(
        child=serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0), required=False, default=dict
    )
    resolvedDeliveryFees = serializers.DictField(child=DeliveryRangeSerializer(), required=False, default=dict)
    eventDetails = EventDetailsSerializer(required=False)
    taxExempt = serializers.BooleanField(required=False, default=False)
    waiveServiceFee = serializers.BooleanField(required=False, default=False)
    tip = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=Decimal("0"))
    taxRate = serializers.DecimalField(max_digits=7, decimal_places=5, min_value=0, required=False, default=Decimal("0"))
    serviceFee = ServiceFeeSerializer(required=False)

    def validate_services(self, value):
        for index, raw in enumerate(value):
            if not (raw.get("serviceType") or raw.get("type")):
                raise serializers.ValidationError(f"services[{index}] is missing serviceType.")
        return value

    def validate_taxRate(self, value):
        """Tax rates are fractions (0.0825 for 8.25%)."""
        if value >= 1:
            raise serializers.ValidationError("taxRate must be a fraction below 1, e.g. 0.0825.")
        return value


# ---------- RESPONSE ----------
class AdjustmentLineSerializer(serializers.Serializer):
    label = serializers.CharField()
    amount = serializers.FloatField()
    taxable = serializers.BooleanField()
    mode = serializers.CharField(source="mode.value")
    type = serializers.CharField(source="type.value")
    value = serializers.FloatField()


class DeliveryMinimumWarningSerializer(serializers.Serializer):
    serviceId = serializers.CharField(source="service_id")
    vendor = serializers.CharField()
    required = serializers.FloatField()
    current = serializers.FloatField()


class InvoiceTotalsSerializer(serializers.Serializer):
    subtotal = serializers.FloatField()
    adjustmentsTotal = serializers.FloatField(source="adjustments_total")
    adjustments = AdjustmentLineSerializer(many=True)
    serviceFee = serializers.FloatField(source="service_fee")
    deliveryFee = serializers.FloatField(source="delivery_fees_total")
    tip = serializers.FloatField()
    tax = serializers.FloatField()
    grandTotal = serializers.FloatField(source="grand_total")
    droppedSelections = serializers.ListField(child=serializers.CharField(), source="dropped_selections")
    deliveryMinimumWarnings = DeliveryMinimumWarningSerializer(many=True, source="delivery_minimum_warnings")
    selectionWarnings = serializers.SerializerMethodField()

    def get_selectionWarnings(self, obj):
        return [warning for service in obj.services for warning in service.warnings]
