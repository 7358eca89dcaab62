from django.contrib import admin

from common.admin_mixins import FranchiseeScopedAdmin
from .models import Warehouse, PurchaseOrder, PurchaseOrderLine


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    readonly_fields = ("created_at", "updated_at")


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    fields = ("position", "product", "quantity", "unit_price_excl_tax", "tax_rate_pct", "is_core_item")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        # Lines go through procurement.services so totals and versions stay in sync
        return False


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(FranchiseeScopedAdmin):
    list_display = ("po_number", "franchisee", "warehouse", "status", "core_pct", "total_excl_tax", "created_at")
    list_filter = ("status", "warehouse", "created_at")
    search_fields = ("po_number", "franchisee__code", "franchisee__name", "notes")
    readonly_fields = (
        "po_number", "status", "core_pct", "total_excl_tax", "version",
        "created_by", "approved_by", "rejection_reason",
        "created_at", "updated_at", "submitted_at", "approved_at", "ready_at", "delivered_at", "cancelled_at",
    )
    date_hierarchy = "created_at"
    inlines = [PurchaseOrderLineInline]


@admin.register(PurchaseOrderLine)
class PurchaseOrderLineAdmin(admin.ModelAdmin):
    list_display = ("purchase_order", "product", "quantity", "unit_price_excl_tax", "is_core_item")
    list_filter = ("purchase_order__status", "is_core_item")
    search_fields = ("product__sku", "product__name", "purchase_order__po_number")
    readonly_fields = ("is_core_item", "created_at", "updated_at")
