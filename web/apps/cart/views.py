"""Cart endpoints for the requesting user.

Quantities are checked against current stock when they change; the check is
advisory, the authoritative one happens when an order is placed.
"""

from django.conf import settings
from django.db import transaction
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.catalog.models import Product
from gateway.responses import error_response, validation_error_response

from .models import CartItem
from .schemas import AddToCartIn, CartItemOut, UpdateCartItemIn


def render_item(item: CartItem) -> dict:
    return CartItemOut(
        id=item.id,
        product_id=item.product_id,
        name=item.product.name,
        price_cents=item.product.price_cents,
        count_in_stock=item.product.count_in_stock,
        quantity=item.quantity,
        line_total_cents=item.product.price_cents * item.quantity,
    ).model_dump()


def _insufficient(product: Product) -> Response:
    return error_response(
        "INSUFFICIENT_STOCK", f"Insufficient stock for product: {product.name}", status.HTTP_422_UNPROCESSABLE_ENTITY
    )


def _item_not_found() -> Response:
    return error_response("CART_ITEM_NOT_FOUND", "Cart item not found.", status.HTTP_404_NOT_FOUND)


class CartView(APIView):
    def get(self, request):
        items = CartItem.objects.filter(user=request.user).select_related("product")
        rendered = [render_item(i) for i in items]
        return Response(
            {
                "cart_items": rendered,
                "total_cents": sum(i["line_total_cents"] for i in rendered),
                "currency": settings.STORE_CURRENCY,
            }
        )

    def post(self, request):
        """Add a product, or increase its quantity when already in the cart."""
        try:
            dto = AddToCartIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        product = Product.objects.filter(pk=dto.product_id).first()
        if product is None:
            return error_response("PRODUCT_NOT_FOUND", "Product not found.", status.HTTP_404_NOT_FOUND)

        with transaction.atomic():
            item = CartItem.objects.select_for_update().filter(user=request.user, product=product).first()
            new_quantity = dto.quantity + (item.quantity if item else 0)
            if product.count_in_stock < new_quantity:
                return _insufficient(product)
            if item:
                item.quantity = new_quantity
                item.save(update_fields=["quantity", "updated_at"])
                return Response({"message": "Cart updated successfully", "cart_item": render_item(item)})
            item = CartItem.objects.create(user=request.user, product=product, quantity=new_quantity)

        return Response(
            {"message": "Product added to cart", "cart_item": render_item(item)},
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request):
        CartItem.objects.filter(user=request.user).delete()
        return Response({"message": "Cart cleared successfully"})


class CartItemView(APIView):
    def put(self, request, item_id: int):
        try:
            dto = UpdateCartItemIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        item = CartItem.objects.select_related("product").filter(pk=item_id, user=request.user).first()
        if item is None:
            return _item_not_found()
        if item.product.count_in_stock < dto.quantity:
            return _insufficient(item.product)
        item.quantity = dto.quantity
        item.save(update_fields=["quantity", "updated_at"])
        return Response({"message": "Cart updated successfully", "cart_item": render_item(item)})

    def delete(self, request, item_id: int):
        deleted, _ = CartItem.objects.filter(pk=item_id, user=request.user).delete()
        if not deleted:
            return _item_not_found()
        return Response({"message": "Item removed from cart"})
