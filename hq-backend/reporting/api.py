# reporting/api.py
from django.http import HttpResponse
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common import errors
from common.params import int_param
from common.permissions import IsBillingStaff, IsNetworkMember, can_act_for_franchisee, franchisee_scope
from .models import RoyaltyReport
from .reports.base import Period
from .reports.export_helpers import royalty_reports_to_csv
from .reports.royalty_reports import generate_royalty_report, report_payload
from .reports.sales_reports import calculate_sales_summaries


def _scoped_franchisee(request, requested_id):
    """
    Franchisee filter for the caller: HQ may pick any (or none),
    franchisee users are pinned to their own.
    """
    scope = franchisee_scope(request.user)
    if scope is None:
        return requested_id
    if requested_id and requested_id != scope:
        raise errors.NotFound(f"Franchisee {requested_id} not found", franchisee_id=requested_id)
    return scope


class RoyaltyReportListView(APIView):
    """
    GET /api/v1/reports/royalties?period=YYYY-MM&franchisee_id=&page=&page_size=
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def get(self, request):
        page = max(int_param(request, "page", 1), 1)
        page_size = min(max(int_param(request, "page_size", 24), 1), 200)
        franchisee_id = _scoped_franchisee(request, int_param(request, "franchisee_id"))
        period = request.GET.get("period")

        qs = RoyaltyReport.objects.select_related("franchisee").order_by("-period", "franchisee__code")
        if franchisee_id:
            qs = qs.filter(franchisee_id=franchisee_id)
        if period:
            qs = qs.filter(period=str(Period.parse(period)))

        total = qs.count()
        rows = qs[(page - 1) * page_size: page * page_size]
        return Response(
            {"items": [report_payload(r) for r in rows], "total": total, "page": page, "page_size": page_size},
            status=200,
        )


class RoyaltyReportGenerateView(APIView):
    """
    POST /api/v1/reports/royalties/generate  { period, franchisee_id }
    201 with the new report, 200 with the existing one.
    """
    permission_classes = [IsAuthenticated, IsBillingStaff]

    def post(self, request):
        payload = request.data or {}
        period = payload.get("period")
        franchisee_id = payload.get("franchisee_id")
        if not period:
            return Response({"error": "period required"}, status=400)
        if not franchisee_id:
            return Response({"error": "franchisee_id required"}, status=400)

        report, created = generate_royalty_report(franchisee_id, period, actor=request.user)
        data = report_payload(report)
        data["created"] = created
        return Response(data, status=201 if created else 200)


class RoyaltyReportDetailView(APIView):
    """
    GET /api/v1/reports/royalties/<id>
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def get(self, request, pk):
        report = RoyaltyReport.objects.select_related("franchisee").filter(pk=pk).first()
        if report is None or not can_act_for_franchisee(request.user, report.franchisee_id):
            raise errors.NotFound(f"Royalty report {pk} not found", report_id=pk)
        return Response(report_payload(report), status=200)


class RoyaltyReportExportView(APIView):
    """
    GET /api/v1/reports/royalties/export?period=YYYY-MM  -> text/csv
    """
    permission_classes = [IsAuthenticated, IsBillingStaff]

    def get(self, request):
        period = Period.parse(request.GET.get("period"))
        reports = (
            RoyaltyReport.objects.filter(period=str(period))
            .select_related("franchisee")
            .order_by("franchisee__code")
        )
        response = HttpResponse(royalty_reports_to_csv(reports), content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="royalties_{period}.csv"'
        return response


class SalesSummaryView(APIView):
    """
    GET /api/v1/reports/sales-summaries?from=YYYY-MM&to=YYYY-MM&granularity=month|day&franchisee_id=
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def get(self, request):
        period_from = request.GET.get("from")
        period_to = request.GET.get("to") or period_from
        if not period_from:
            return Response({"error": "from required (YYYY-MM)"}, status=400)
        granularity = (request.GET.get("granularity") or "month").strip().lower()
        franchisee_id = _scoped_franchisee(request, int_param(request, "franchisee_id"))

        data = calculate_sales_summaries(period_from, period_to, granularity=granularity, franchisee_id=franchisee_id)
        return Response(data, status=200)
