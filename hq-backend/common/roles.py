from django.db import models


class NetworkRole(models.TextChoices):
    HQ_ADMIN         = "hq_admin",         "HQ Admin"
    HQ_PROCUREMENT   = "hq_procurement",   "HQ Procurement"
    HQ_FINANCE       = "hq_finance",       "HQ Finance"
    FRANCHISEE_OWNER = "franchisee_owner", "Franchisee Owner"
    FRANCHISEE_STAFF = "franchisee_staff", "Franchisee Staff"


R = NetworkRole

# Plain string values: roles read from the database are str, not members
HQ_ROLES = frozenset({R.HQ_ADMIN.value, R.HQ_PROCUREMENT.value, R.HQ_FINANCE.value})
FRANCHISEE_ROLES = frozenset({R.FRANCHISEE_OWNER.value, R.FRANCHISEE_STAFF.value})

# Roles holding the purchase-order approval capability.
APPROVER_ROLES = frozenset({R.HQ_ADMIN.value, R.HQ_PROCUREMENT.value})

# Roles allowed to generate royalty reports.
BILLING_ROLES = frozenset({R.HQ_ADMIN.value, R.HQ_FINANCE.value})
