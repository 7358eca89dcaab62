# procurement/serializers.py
from rest_framework import serializers

from .workflow import PurchaseOrderStatus


class LineInputSerializer(serializers.Serializer):
    """
    One purchase-order line as sent by the order-entry UI.
    Every field is optional here so the same shape serves partial updates;
    required-ness is enforced by procurement.services.
    """
    product_id = serializers.IntegerField(required=False)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, required=False)
    unit_price_excl_tax = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    tax_rate_pct = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    is_core_item = serializers.BooleanField(required=False, allow_null=True)


class RatioPreviewSerializer(serializers.Serializer):
    lines = LineInputSerializer(many=True, allow_empty=True)


class PurchaseOrderCreateSerializer(serializers.Serializer):
    franchisee_id = serializers.IntegerField(required=False)
    warehouse_id = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    lines = LineInputSerializer(many=True, required=False, default=list)


class PurchaseOrderReplaceSerializer(serializers.Serializer):
    lines = LineInputSerializer(many=True, allow_empty=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class VersionedSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(required=False, min_value=1)


class TransitionSerializer(VersionedSerializer):
    # Unknown event names are reported by the state machine with the legal ones
    event = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_event(self, value):
        return value.strip().lower()


class StatusChangeSerializer(VersionedSerializer):
    status = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_status(self, value):
        return value.strip().upper()


STATUS_CHOICES = [value for value, _ in PurchaseOrderStatus.choices]
