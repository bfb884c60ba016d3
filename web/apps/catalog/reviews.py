"""Product rating aggregate derived from reviews.

``recompute_rating`` rebuilds ``Product.rating`` / ``Product.num_reviews``
from the review rows alone, so calling it twice, or after any mix of
creates, edits and deletes, leaves the same result. Review writers call it
inside the transaction of the write, after locking the product row, so two
writers on one product apply their recomputes in order.
"""

from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Avg, Count

from .models import Product, Review

TWO_PLACES = Decimal("0.01")


def lock_product(product_id: int):
    """Return the product with its row locked for the current transaction, or None."""
    return Product.objects.select_for_update().filter(pk=product_id).first()


def recompute_rating(product_id: int) -> tuple[Decimal, int]:
    """Recompute the average rating and review count of a product.

    Returns:
        tuple: ``(rating, num_reviews)`` as written; the rating is rounded
        to two decimals and is 0 when the product has no reviews.
    """
    agg = Review.objects.filter(product_id=product_id).aggregate(avg=Avg("rating"), n=Count("id"))
    count = agg["n"]
    rating = Decimal(str(agg["avg"])).quantize(TWO_PLACES, rounding=ROUND_HALF_UP) if count else Decimal("0.00")
    Product.objects.filter(pk=product_id).update(rating=rating, num_reviews=count)
    return rating, count
