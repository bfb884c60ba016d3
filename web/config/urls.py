from django.urls import include, path

urlpatterns = [
    path("api/", include("apps.monitoring.urls")),
    path("api/v1/", include("apps.catalog.urls")),
    path("api/v1/address/", include("apps.accounts.urls")),
    path("api/v1/cart/", include("apps.cart.urls")),
    path("api/v1/order/", include("apps.orders.urls")),
]
