"""Low-stock email alerts for administrators.

``notify_admins_of_low_stock`` is run once a day by cron through the
``notify_low_stock`` management command. Delivery goes through Django's
configured email backend.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings
from django.core.mail import send_mail
from django.utils.html import escape

from apps.accounts.models import User

from .models import Product

logger = logging.getLogger("storefront.alerts")

SUBJECT = "Low Stock Alert"


@dataclass
class AlertResult:
    products: int
    recipients: List[str]
    sent: bool


def low_stock_products(limit: Optional[int] = None):
    limit = settings.LOW_STOCK_BUFFER_LIMIT if limit is None else limit
    return Product.objects.filter(count_in_stock__lt=limit).order_by("count_in_stock", "name")


def render_html(products, limit: int) -> str:
    rows = "".join(
        f"<tr><td>{escape(p.name)}</td><td>{p.count_in_stock}</td><td>{limit}</td></tr>" for p in products
    )
    return (
        "<h2>Low Stock Warning!</h2>"
        "<p>The following products are below the buffer stock limit:</p>"
        "<table>"
        "<thead><tr><th>Product</th><th>Stock</th><th>Buffer Limit</th></tr></thead>"
        f"<tbody>{rows}</tbody>"
        "</table>"
        "<p>Ensure timely restocking.</p>"
    )


def render_text(products, limit: int) -> str:
    lines = [f"- {p.name}: {p.count_in_stock} in stock (buffer limit {limit})" for p in products]
    return "The following products are below the buffer stock limit:\n" + "\n".join(lines)


def notify_admins_of_low_stock(limit: Optional[int] = None) -> AlertResult:
    """Email every active admin the products whose stock is below ``limit``.

    Returns:
        AlertResult: How many products were reported and to whom. ``sent``
        is False when there was nothing to report or nobody to tell.
    """
    limit = settings.LOW_STOCK_BUFFER_LIMIT if limit is None else limit
    products = list(low_stock_products(limit))
    if not products:
        logger.info("no low-stock items detected")
        return AlertResult(products=0, recipients=[], sent=False)

    recipients = list(
        User.objects.filter(role=User.Role.ADMIN, is_active=True)
        .exclude(email="")
        .values_list("email", flat=True)
    )
    if not recipients:
        logger.warning("no admin user available for low-stock notification", extra={"products": len(products)})
        return AlertResult(products=len(products), recipients=[], sent=False)

    send_mail(
        SUBJECT,
        render_text(products, limit),
        settings.LOW_STOCK_ALERT_FROM,
        recipients,
        html_message=render_html(products, limit),
    )
    logger.info("low stock notification sent", extra={"products": len(products), "recipients": len(recipients)})
    return AlertResult(products=len(products), recipients=recipients, sent=True)
