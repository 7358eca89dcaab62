from django.apps import AppConfig


class FranchiseesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "franchisees"
    verbose_name = "Franchisees"
