from django.contrib import admin

from common.admin_mixins import FranchiseeScopedAdmin, ReadOnlyAdmin
from .models import RoyaltyReport


@admin.register(RoyaltyReport)
class RoyaltyReportAdmin(FranchiseeScopedAdmin, ReadOnlyAdmin):
    list_display = ("period", "franchisee", "gross_sales", "share_pct", "amount_due", "order_count", "generated_at")
    list_filter = ("period", "franchisee")
    search_fields = ("franchisee__code", "franchisee__name", "period")
    date_hierarchy = "generated_at"
