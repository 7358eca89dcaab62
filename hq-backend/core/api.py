# core/api.py
from rest_framework.routers import DefaultRouter

from franchisees.views import FranchiseAgreementViewSet

router = DefaultRouter()
# Franchisees
router.register(r"franchise-agreements", FranchiseAgreementViewSet, basename="franchise-agreement")
