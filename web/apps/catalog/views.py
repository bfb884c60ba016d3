"""Catalog endpoints: products and categories.

Reads of products and reviews are public. Product and category writes
require the ADMIN role; reviews are written by any signed-in user and only
changed or removed by their author.

Deleting a product is an explicit sequence inside one transaction: delete
its reviews, drop it from every cart, then delete the row. Products that
appear on an order are kept and the request answers 409. Every review write
locks the product row and recomputes its rating in the same transaction.
"""

import logging

from django.conf import settings
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models.deletion import ProtectedError
from django.utils.text import slugify
from pydantic import ValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.permissions import IsAdminRole, IsAdminRoleOrReadOnly
from apps.cart.models import CartItem
from gateway.responses import error_response, validation_error_response

from . import inventory, reviews
from .models import Category, Product, Review
from .schemas import (
    CategoryIn,
    CategoryOut,
    ProductIn,
    ProductOut,
    ReviewIn,
    ReviewOut,
    ReviewUpdateIn,
    StockIn,
)

logger = logging.getLogger("storefront.catalog")


def render_category(c: Category) -> dict:
    return CategoryOut(id=c.id, name=c.name, slug=c.slug).model_dump()


def render_product(p: Product) -> dict:
    return ProductOut(
        id=p.id,
        name=p.name,
        description=p.description,
        brand=p.brand,
        price_cents=p.price_cents,
        count_in_stock=p.count_in_stock,
        categories=[CategoryOut(id=c.id, name=c.name, slug=c.slug) for c in p.categories.all()],
        currency=settings.STORE_CURRENCY,
        rating=float(p.rating),
        num_reviews=p.num_reviews,
    ).model_dump()


def _product_not_found() -> Response:
    return error_response("PRODUCT_NOT_FOUND", "Product not found.", status.HTTP_404_NOT_FOUND)


def _resolve_categories(slugs):
    found = list(Category.objects.filter(slug__in=slugs))
    if len(found) != len(slugs):
        return None
    return found


class ProductCollectionView(APIView):
    permission_classes = [IsAdminRoleOrReadOnly]

    def get(self, request):
        qs = Product.objects.prefetch_related("categories").order_by("-created_at", "-id")
        category = request.GET.get("category")
        if category:
            qs = qs.filter(categories__slug=category)
        try:
            page = int(request.GET.get("page", 1))
            limit = min(int(request.GET.get("limit", 10)), 100)
        except ValueError:
            return error_response("INVALID_INPUT", "page and limit must be integers.", status.HTTP_400_BAD_REQUEST)
        if limit < 1:
            return error_response("INVALID_INPUT", "limit must be positive.", status.HTTP_400_BAD_REQUEST)
        p = Paginator(qs, limit)
        page_obj = p.get_page(page)
        return Response(
            {
                "products": [render_product(x) for x in page_obj.object_list],
                "current_page": page_obj.number,
                "total_pages": p.num_pages,
                "total_products": p.count,
            }
        )

    def post(self, request):
        try:
            dto = ProductIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        categories = _resolve_categories(dto.categories)
        if categories is None:
            return error_response("INVALID_INPUT", "Some categories do not exist.", status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            product = Product.objects.create(**dto.model_dump(exclude={"categories"}))
            product.categories.set(categories)
        logger.info("product created", extra={"product_id": product.id})
        return Response(
            {"message": "Product created successfully", "product": render_product(product)},
            status=status.HTTP_201_CREATED,
        )


class ProductDetailView(APIView):
    permission_classes = [IsAdminRoleOrReadOnly]

    def get(self, request, product_id: int):
        product = Product.objects.prefetch_related("categories").filter(pk=product_id).first()
        if product is None:
            return _product_not_found()
        return Response({"product": render_product(product)})

    def put(self, request, product_id: int):
        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            return _product_not_found()
        try:
            dto = ProductIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        categories = _resolve_categories(dto.categories)
        if categories is None:
            return error_response("INVALID_INPUT", "Some categories do not exist.", status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            for name, value in dto.model_dump(exclude={"categories"}).items():
                setattr(product, name, value)
            product.save()
            product.categories.set(categories)
        return Response({"message": "Product updated successfully", "product": render_product(product)})

    def delete(self, request, product_id: int):
        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            return _product_not_found()
        try:
            with transaction.atomic():
                reviews_removed, _ = Review.objects.filter(product=product).delete()
                removed, _ = CartItem.objects.filter(product=product).delete()
                product.delete()
        except ProtectedError:
            return error_response(
                "PRODUCT_IN_USE", "Product appears on orders and cannot be deleted.", status.HTTP_409_CONFLICT
            )
        logger.info(
            "product deleted",
            extra={"product_id": product_id, "cart_items_removed": removed, "reviews_removed": reviews_removed},
        )
        return Response({"message": "Product deleted successfully"})


class ProductStockView(APIView):
    """Administrative stock correction to an absolute value."""

    permission_classes = [IsAdminRole]

    def put(self, request, product_id: int):
        try:
            dto = StockIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        if not inventory.set_stock(product_id, dto.count_in_stock):
            return _product_not_found()
        logger.info("stock corrected", extra={"product_id": product_id, "count_in_stock": dto.count_in_stock})
        return Response(
            {"message": "Stock updated successfully", "product": render_product(Product.objects.get(pk=product_id))}
        )


class CategoryCollectionView(APIView):
    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAdminRole()]

    def get(self, request):
        return Response({"categories": [render_category(c) for c in Category.objects.all()]})

    def post(self, request):
        try:
            dto = CategoryIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        slug = slugify(dto.name)
        if not slug:
            return error_response("INVALID_INPUT", "Category name is required.", status.HTTP_400_BAD_REQUEST)
        if Category.objects.filter(slug=slug).exists():
            return error_response("CATEGORY_EXISTS", "Category already exists.", status.HTTP_409_CONFLICT)
        category = Category.objects.create(name=dto.name, slug=slug)
        return Response(
            {"message": "Category created successfully!", "category": render_category(category)},
            status=status.HTTP_201_CREATED,
        )


class CategoryDetailView(APIView):
    permission_classes = [IsAdminRole]

    def put(self, request, slug: str):
        category = Category.objects.filter(slug=slug).first()
        if category is None:
            return error_response("CATEGORY_NOT_FOUND", "Category not found", status.HTTP_404_NOT_FOUND)
        try:
            dto = CategoryIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        new_slug = slugify(dto.name)
        if not new_slug:
            return error_response("INVALID_INPUT", "Category name is required.", status.HTTP_400_BAD_REQUEST)
        if Category.objects.filter(slug=new_slug).exclude(pk=category.pk).exists():
            return error_response("CATEGORY_EXISTS", "Category already exists.", status.HTTP_409_CONFLICT)
        category.name = dto.name
        category.slug = new_slug
        category.save()
        return Response({"message": "Category updated successfully", "category": render_category(category)})

    def delete(self, request, slug: str):
        category = Category.objects.filter(slug=slug).first()
        if category is None:
            return error_response("CATEGORY_NOT_FOUND", "Category not found", status.HTTP_404_NOT_FOUND)
        with transaction.atomic():
            category.products.clear()
            category.delete()
        return Response({"message": "Category deleted successfully"})


def render_review(r: Review) -> dict:
    return ReviewOut(
        id=r.id,
        product_id=r.product_id,
        user_id=r.user_id,
        user_name=r.user.get_full_name() or r.user.username,
        rating=r.rating,
        comment=r.comment,
        created_at=r.created_at,
        updated_at=r.updated_at,
    ).model_dump()


def _review_not_found() -> Response:
    return error_response("REVIEW_NOT_FOUND", "Review not found", status.HTTP_404_NOT_FOUND)


class ProductReviewsView(APIView):
    """Public list of a product's reviews, newest first."""

    permission_classes = [AllowAny]

    def get(self, request, product_id: int):
        if not Product.objects.filter(pk=product_id).exists():
            return _product_not_found()
        qs = Review.objects.select_related("user").filter(product_id=product_id).order_by("-created_at", "-id")
        return Response({"reviews": [render_review(r) for r in qs]})


class ReviewCollectionView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        try:
            dto = ReviewIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        with transaction.atomic():
            if reviews.lock_product(dto.product_id) is None:
                return _product_not_found()
            review = Review.objects.create(
                product_id=dto.product_id, user=request.user, rating=dto.rating, comment=dto.comment
            )
            rating, count = reviews.recompute_rating(dto.product_id)
        logger.info(
            "review created",
            extra={"review_id": review.id, "product_id": dto.product_id, "rating": str(rating), "num_reviews": count},
        )
        return Response({"review": render_review(review)}, status=status.HTTP_201_CREATED)


class ReviewDetailView(APIView):
    """Update or delete a review; only its author may do either."""

    permission_classes = [IsAuthenticated]

    def put(self, request, review_id: int):
        try:
            dto = ReviewUpdateIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        with transaction.atomic():
            review = Review.objects.select_related("user").filter(pk=review_id).first()
            if review is None:
                return _review_not_found()
            if review.user_id != request.user.id:
                return error_response(
                    "FORBIDDEN", "Not authorized to update this review", status.HTTP_403_FORBIDDEN
                )
            reviews.lock_product(review.product_id)
            for name, value in dto.model_dump(exclude_none=True).items():
                setattr(review, name, value)
            review.save()
            reviews.recompute_rating(review.product_id)
        return Response({"review": render_review(review)})

    def delete(self, request, review_id: int):
        with transaction.atomic():
            review = Review.objects.filter(pk=review_id).first()
            if review is None:
                return _review_not_found()
            if review.user_id != request.user.id:
                return error_response(
                    "FORBIDDEN", "Not authorized to delete this review", status.HTTP_403_FORBIDDEN
                )
            product_id = review.product_id
            reviews.lock_product(product_id)
            review.delete()
            reviews.recompute_rating(product_id)
        logger.info("review deleted", extra={"review_id": review_id, "product_id": product_id})
        return Response({"message": "Review deleted successfully"})
