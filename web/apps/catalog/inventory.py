"""Inventory ledger operations on ``Product.count_in_stock``.

Stock is mutated with single conditional UPDATE statements instead of
read-modify-write, so two concurrent buyers of the last unit cannot both
succeed: the database evaluates ``count_in_stock >= quantity`` and applies
the decrement in the same statement, under the row lock it takes for the
update. Callers that need several decrements to be all-or-nothing wrap them
in ``transaction.atomic()``.
"""

from django.db.models import F

from .models import Product


def decrement_stock(product_id: int, quantity: int) -> bool:
    """Take ``quantity`` units out of stock if at least that many remain.

    Args:
        product_id: Primary key of the product.
        quantity: Units to remove, must be positive.

    Returns:
        bool: True when the stock was decremented, False when the product
        does not exist or holds fewer than ``quantity`` units (nothing
        changes in that case).
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")
    updated = Product.objects.filter(pk=product_id, count_in_stock__gte=quantity).update(
        count_in_stock=F("count_in_stock") - quantity
    )
    return updated == 1


def increment_stock(product_id: int, quantity: int) -> bool:
    """Put ``quantity`` units back into stock.

    Returns:
        bool: False when the product no longer exists.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")
    updated = Product.objects.filter(pk=product_id).update(
        count_in_stock=F("count_in_stock") + quantity
    )
    return updated == 1


def set_stock(product_id: int, quantity: int) -> bool:
    """Administrative stock correction to an absolute value."""
    if quantity < 0:
        raise ValueError("quantity cannot be negative")
    return Product.objects.filter(pk=product_id).update(count_in_stock=quantity) == 1


def stock_of(product_id: int) -> int:
    """Current stock for a product, 0 when it does not exist."""
    row = Product.objects.filter(pk=product_id).values_list("count_in_stock", flat=True).first()
    return row or 0
