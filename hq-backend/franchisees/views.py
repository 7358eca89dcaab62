# franchisees/views.py
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.permissions import IsHeadquarters, IsNetworkMember, franchisee_scope
from .models import FranchiseAgreement
from .serializers import AgreementCloseSerializer, FranchiseAgreementSerializer
from . import services


class FranchiseAgreementViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    GET  /api/v1/franchise-agreements?franchisee=<id>
    POST /api/v1/franchise-agreements  { franchisee_id, start_date, end_date?, entry_fee_amount?, revenue_share_pct?, timezone?, notes? }
    POST /api/v1/franchise-agreements/<id>/close  { end_date }

    Agreements are never edited in place; an open agreement can only be closed.
    """
    queryset = FranchiseAgreement.objects.select_related("franchisee")
    serializer_class = FranchiseAgreementSerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["franchisee"]
    ordering = ["-start_date"]
    ordering_fields = ["start_date", "created_at"]

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [IsAuthenticated(), IsNetworkMember()]
        return [IsAuthenticated(), IsHeadquarters()]

    def get_queryset(self):
        qs = super().get_queryset()
        scope = franchisee_scope(self.request.user)
        if scope is None:
            return qs
        if scope is False:
            return qs.none()
        return qs.filter(franchisee_id=scope)

    @action(detail=True, methods=["POST"], url_path="close")
    def close(self, request, pk=None):
        agreement = self.get_object()
        ser = AgreementCloseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        agreement = services.close_agreement(agreement, ser.validated_data["end_date"])
        return Response(FranchiseAgreementSerializer(agreement).data, status=status.HTTP_200_OK)
