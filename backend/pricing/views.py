from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .api.serializers import InvoiceComputeRequestSerializer, InvoiceTotalsSerializer
from .dataclasses import DeliveryRange, EventDetails, OrderSnapshot, ServiceFeeSettings
from .services.catalog import build_adjustments, build_services
from .services.invoice import assemble_invoice, resolved_fees_payload
from .services.policy import PricingPolicyError, get_pricing_policy

logger = logging.getLogger(__name__)


def _event_from(data: dict) -> EventDetails:
    if not data:
        return EventDetails()
    return EventDetails(
        event_name=data.get("eventName") or "Booking Event",
        company_name=data.get("companyName", ""),
        event_location=data.get("eventLocation", ""),
        event_date=data.get("eventDate", ""),
        service_time=data.get("serviceTime", ""),
        contact_name=data.get("contactName", ""),
        phone_number=data.get("phoneNumber", ""),
        email_address=data.get("emailAddress", ""),
        additional_notes=data.get("additionalNotes", ""),
        add_backup_contact=bool(data.get("addBackupContact", False)),
    )


class InvoiceComputeView(APIView):
    """Price an order and return the invoice payload plus its totals."""
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        if not getattr(settings, "INVOICE_ENGINE_ENABLED", True):
            return Response({"detail": "Invoice engine is not enabled."}, status=status.HTTP_404_NOT_FOUND)

        ser = InvoiceComputeRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            policy = get_pricing_policy()
        except PricingPolicyError as e:
            logger.error(f"Cannot price invoice, pricing policy unavailable: {e}")
            return Response({"detail": "Pricing policy unavailable."}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        fee = data.get("serviceFee")
        snapshot = OrderSnapshot(
            services=build_services(data["services"]),
            selections=dict(data["selectedItems"]),
            guest_count=data["guestCount"],
            adjustments=build_adjustments(data["customAdjustments"]),
            distances_by_service=dict(data["distancesByService"]),
            distance=data.get("distanceMiles"),
            resolved_fees={
                service_id: DeliveryRange(range=tier["range"], fee=tier["fee"])
                for service_id, tier in data["resolvedDeliveryFees"].items()
            },
            event=_event_from(data.get("eventDetails")),
            tax_exempt=data["taxExempt"],
            waive_service_fee=data["waiveServiceFee"],
            tip=data["tip"],
            tax_rate=data["taxRate"],
            service_fee=ServiceFeeSettings(**fee) if fee else None,
        )

        result = assemble_invoice(snapshot, policy)
        if not result.ok:
            v = result.validation
            return Response(
                {
                    "detail": v.message,
                    "code": v.code,
                    "serviceName": v.service_name,
                    "threshold": float(v.threshold) if v.threshold is not None else None,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "payload": result.payload,
                "totals": InvoiceTotalsSerializer(result.invoice).data,
                "resolvedDeliveryFees": resolved_fees_payload(result.invoice),
            },
            status=status.HTTP_200_OK,
        )
