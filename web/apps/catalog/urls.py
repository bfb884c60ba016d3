from django.urls import path

from .views import (
    CategoryCollectionView,
    CategoryDetailView,
    ProductCollectionView,
    ProductDetailView,
    ProductReviewsView,
    ProductStockView,
    ReviewCollectionView,
    ReviewDetailView,
)

app_name = "catalog"

urlpatterns = [
    path("product/", ProductCollectionView.as_view(), name="product-collection"),
    path("product/stock/<int:product_id>/", ProductStockView.as_view(), name="product-stock"),
    path("product/<int:product_id>/", ProductDetailView.as_view(), name="product-detail"),
    path("categories/", CategoryCollectionView.as_view(), name="category-collection"),
    path("categories/<slug:slug>/", CategoryDetailView.as_view(), name="category-detail"),
    path("review/", ReviewCollectionView.as_view(), name="review-collection"),
    path("review/product/<int:product_id>/", ProductReviewsView.as_view(), name="product-reviews"),
    path("review/<int:review_id>/", ReviewDetailView.as_view(), name="review-detail"),
]
