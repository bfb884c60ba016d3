from django.urls import path

from .views import AddressCollectionView, AddressDetailView

app_name = "accounts"

urlpatterns = [
    path("", AddressCollectionView.as_view(), name="address-collection"),
    path("<int:address_id>/", AddressDetailView.as_view(), name="address-detail"),
]
