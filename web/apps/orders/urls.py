from django.urls import path

from .views import (
    AdminOrdersView,
    OrderDetailView,
    OrdersCollectionView,
    OrderStatusView,
    PaymentIntentView,
)

app_name = "orders"

urlpatterns = [
    path("payment-intent/", PaymentIntentView.as_view(), name="payment-intent"),
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET mine / POST place
    path("admin/all/", AdminOrdersView.as_view(), name="orders-admin-all"),
    path("admin/<str:order_id>/status/", OrderStatusView.as_view(), name="orders-admin-status"),
    path("<str:order_id>/status/", OrderStatusView.as_view(), name="orders-status"),
    path("<str:order_id>/", OrderDetailView.as_view(), name="orders-detail"),
]
