from django.contrib import admin

from common.admin_mixins import FranchiseeScopedAdmin
from .models import CustomerOrder, CustomerOrderStatus


@admin.register(CustomerOrder)
class CustomerOrderAdmin(FranchiseeScopedAdmin):
    list_display = ("id", "reference", "franchisee", "channel", "status", "total_excl_tax", "fulfilled_at")
    list_filter = ("status", "channel", "franchisee")
    search_fields = ("reference", "franchisee__code")
    readonly_fields = ("fulfilled_at", "created_at", "updated_at")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        if obj is not None and obj.status == CustomerOrderStatus.FULFILLED:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.status == CustomerOrderStatus.FULFILLED:
            return False
        return super().has_delete_permission(request, obj)
