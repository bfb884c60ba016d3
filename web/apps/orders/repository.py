"""Repository layer for the order workflow.

``OrderRepository`` implements ``OrderStorePort`` on top of the Django ORM.
It maps between ORM rows and the domain dataclasses so the domain service
never sees a model instance, and it is the one place that knows which
tables make up the order commit (orders, order lines, products, the user's
order history and the cart).
"""

from typing import List, Optional

from django.db import IntegrityError, transaction

from apps.accounts.models import Address, User
from apps.cart.models import CartItem
from apps.catalog import inventory

from .domain import CartLine, DuplicatePayment, Order, OrderLine, OrderStatus, PaymentStatus
from .models import OrderLineModel, OrderModel


def to_domain(obj: OrderModel) -> Order:
    """Map an ``OrderModel`` (with its lines) to the domain ``Order``."""
    return Order(
        id=obj.id,
        order_id=obj.order_id,
        user_id=obj.user_id,
        lines=[
            OrderLine(product_id=line.product_id, quantity=line.quantity, price_cents=line.price_cents)
            for line in obj.lines.all()
        ],
        payment_id=obj.payment_id,
        address_id=obj.delivery_address_id,
        total_cents=obj.total_cents,
        currency=obj.currency,
        status=OrderStatus(obj.status),
        payment_status=PaymentStatus(obj.payment_status),
    )


class OrderRepository:
    """Django ORM implementation of ``OrderStorePort``."""

    def atomic(self):
        return transaction.atomic()

    def address_exists(self, user_id: int, address_id: int) -> bool:
        return Address.objects.filter(pk=address_id, user_id=user_id).exists()

    def load_cart(self, user_id: int) -> List[CartLine]:
        items = CartItem.objects.filter(user_id=user_id).select_related("product").order_by("id")
        return [
            CartLine(
                product_id=item.product_id,
                name=item.product.name,
                quantity=item.quantity,
                price_cents=item.product.price_cents,
                stock=item.product.count_in_stock,
            )
            for item in items
        ]

    def payment_exists(self, payment_id: str) -> bool:
        return OrderModel.objects.filter(payment_id=payment_id).exists()

    def create_order(self, order: Order) -> Order:
        """Persist a new order and its lines.

        The insert runs in a nested savepoint so a unique violation on
        ``payment_id`` (a concurrent commit with the same intent) only
        rolls back this block before being reported as ``DuplicatePayment``.

        Returns:
            Order: ``order`` with its storage key set.
        """
        try:
            with transaction.atomic():
                obj = OrderModel.objects.create(
                    order_id=order.order_id,
                    user_id=order.user_id,
                    payment_id=order.payment_id,
                    payment_status=order.payment_status.value,
                    delivery_address_id=order.address_id,
                    total_cents=order.total_cents,
                    currency=order.currency,
                    status=order.status.value,
                )
        except IntegrityError:
            if OrderModel.objects.filter(payment_id=order.payment_id).exists():
                raise DuplicatePayment()
            raise
        OrderLineModel.objects.bulk_create(
            [
                OrderLineModel(
                    order=obj,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_cents=line.price_cents,
                )
                for line in order.lines
            ]
        )
        order.id = obj.id
        return order

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        return inventory.decrement_stock(product_id, quantity)

    def increment_stock(self, product_id: int, quantity: int) -> bool:
        return inventory.increment_stock(product_id, quantity)

    def link_order_to_user(self, user_id: int, order: Order) -> None:
        User.order_history.through.objects.create(user_id=user_id, ordermodel_id=order.id)

    def clear_cart(self, user_id: int) -> int:
        deleted, _ = CartItem.objects.filter(user_id=user_id).delete()
        return deleted

    def get_order_for_update(self, order_id: str) -> Optional[Order]:
        obj = OrderModel.objects.select_for_update().filter(order_id=order_id).first()
        return to_domain(obj) if obj else None

    def save_status(self, order: Order) -> None:
        obj = OrderModel.objects.get(pk=order.id)
        obj.status = order.status.value
        obj.save(update_fields=["status", "updated_at"])
