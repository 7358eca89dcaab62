# reporting/urls.py
from django.urls import path
from .api import (
    RoyaltyReportListView, RoyaltyReportGenerateView, RoyaltyReportDetailView,
    RoyaltyReportExportView, SalesSummaryView,
)

app_name = "reporting"

urlpatterns = [
    path("royalties", RoyaltyReportListView.as_view(), name="royalty-list"),
    path("royalties/generate", RoyaltyReportGenerateView.as_view(), name="royalty-generate"),
    path("royalties/export", RoyaltyReportExportView.as_view(), name="royalty-export"),
    path("royalties/<int:pk>", RoyaltyReportDetailView.as_view(), name="royalty-detail"),
    path("sales-summaries", SalesSummaryView.as_view(), name="sales-summaries"),
]
