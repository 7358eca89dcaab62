from django.contrib import admin

from common.admin_mixins import FranchiseeScopedAdmin
from .models import Franchisee, FranchiseUser, FranchiseAgreement


@admin.register(Franchisee)
class FranchiseeAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    readonly_fields = ("created_at", "updated_at")


@admin.register(FranchiseUser)
class FranchiseUserAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "franchisee", "is_active")
    list_filter = ("role", "is_active")
    search_fields = ("user__username", "user__email", "franchisee__code")


@admin.register(FranchiseAgreement)
class FranchiseAgreementAdmin(FranchiseeScopedAdmin):
    list_display = ("franchisee", "start_date", "end_date", "entry_fee_amount", "revenue_share_pct", "timezone")
    list_filter = ("franchisee",)
    search_fields = ("franchisee__code", "franchisee__name", "notes")
    readonly_fields = ("created_at", "updated_at")
    date_hierarchy = "start_date"
