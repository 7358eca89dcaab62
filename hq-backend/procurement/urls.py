# procurement/urls.py
from django.urls import path
from .api import (
    RatioPreviewView,
    PurchaseOrderListCreateView, PurchaseOrderDetailView,
    PurchaseOrderLineCreateView, PurchaseOrderLineDetailView,
    PurchaseOrderSubmitView, PurchaseOrderTransitionView, PurchaseOrderStatusView,
)

app_name = "procurement"

urlpatterns = [
    path("ratios", RatioPreviewView.as_view(), name="ratios-preview"),
    path("purchase-orders", PurchaseOrderListCreateView.as_view(), name="po-list-create"),
    path("purchase-orders/<int:pk>", PurchaseOrderDetailView.as_view(), name="po-detail"),
    path("purchase-orders/<int:pk>/lines", PurchaseOrderLineCreateView.as_view(), name="po-line-create"),
    path("purchase-orders/<int:pk>/submit", PurchaseOrderSubmitView.as_view(), name="po-submit"),
    path("purchase-orders/<int:pk>/transition", PurchaseOrderTransitionView.as_view(), name="po-transition"),
    path("purchase-orders/<int:pk>/status", PurchaseOrderStatusView.as_view(), name="po-status"),
    path("purchase-order-lines/<int:pk>", PurchaseOrderLineDetailView.as_view(), name="po-line-detail"),
]
