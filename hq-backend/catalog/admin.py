from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "is_core_item", "default_tax_rate_pct", "unit", "is_active")
    list_filter = ("is_core_item", "is_active")
    search_fields = ("sku", "name")
    readonly_fields = ("created_at", "updated_at")
