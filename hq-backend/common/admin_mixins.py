from django.contrib import admin

from common.permissions import franchisee_scope


class FranchiseeScopedAdmin(admin.ModelAdmin):
    """
    Filter admin queryset to the franchisee of a franchisee-side staff user.
    Superusers and HQ roles see all.
    """
    franchisee_field = "franchisee"

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        scope = franchisee_scope(request.user)
        if scope is None:
            return qs
        if scope is False:
            return qs.none()
        return qs.filter(**{f"{self.franchisee_field}_id": scope})


class ReadOnlyAdmin(admin.ModelAdmin):
    """For immutable records: view only."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
