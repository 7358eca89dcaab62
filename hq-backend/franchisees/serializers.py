# franchisees/serializers.py
from rest_framework import serializers

from .models import Franchisee, FranchiseAgreement
from . import services


class FranchiseAgreementSerializer(serializers.ModelSerializer):
    franchisee_id = serializers.PrimaryKeyRelatedField(
        source="franchisee", queryset=Franchisee.objects.all()
    )
    entry_fee_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    revenue_share_pct = serializers.DecimalField(max_digits=6, decimal_places=4, required=False)
    timezone = serializers.CharField(max_length=64, required=False)

    class Meta:
        model = FranchiseAgreement
        fields = (
            "id", "franchisee_id", "start_date", "end_date",
            "entry_fee_amount", "revenue_share_pct", "timezone", "notes",
            "created_at", "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def create(self, validated):
        # Overlap checks and settings-driven defaults live in the service
        return services.create_agreement(
            franchisee=validated["franchisee"],
            start_date=validated["start_date"],
            end_date=validated.get("end_date"),
            entry_fee_amount=validated.get("entry_fee_amount"),
            revenue_share_pct=validated.get("revenue_share_pct"),
            timezone_name=validated.get("timezone"),
            notes=validated.get("notes", ""),
        )


class AgreementCloseSerializer(serializers.Serializer):
    end_date = serializers.DateField()
