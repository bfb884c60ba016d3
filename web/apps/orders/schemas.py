"""Pydantic schemas for orders.

This module exposes the request validation schemas used by the orders API
and the read DTOs used to render orders.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .domain import OrderStatus

GATEWAY_ID_RE = re.compile(r"^[A-Za-z0-9_]{3,255}$")


def _gateway_id(v: str) -> str:
    v2 = v.strip()
    if not GATEWAY_ID_RE.match(v2):
        raise ValueError("Invalid gateway identifier format")
    return v2


class PaymentIntentDTO(BaseModel):
    """Schema for requesting a payment intent for the current cart.

    Attributes:
        address_id: Delivery address, must belong to the caller.
        payment_method_id: Gateway payment method reference (e.g. ``pm_card_visa``).
    """

    address_id: int = Field(gt=0)
    payment_method_id: str = Field(min_length=3, max_length=255)

    @field_validator("payment_method_id")
    @classmethod
    def validate_payment_method(cls, v: str) -> str:
        return _gateway_id(v)


class CreateOrderDTO(BaseModel):
    """Schema for placing an order from a confirmed payment intent.

    Attributes:
        payment_intent_id: Id returned by the payment-intent endpoint.
        address_id: Delivery address, must belong to the caller.
    """

    payment_intent_id: str = Field(min_length=3, max_length=255)
    address_id: int = Field(gt=0)

    @field_validator("payment_intent_id")
    @classmethod
    def validate_payment_intent(cls, v: str) -> str:
        return _gateway_id(v)


class StatusUpdateDTO(BaseModel):
    """Optional explicit destination for a status transition.

    ``None`` means "next status in the forward flow".
    """

    status: Optional[OrderStatus] = None


class OrderLineReadDTO(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    price_cents: int


class OrderReadDTO(BaseModel):
    id: UUID
    order_id: str
    user_id: int
    status: OrderStatus
    payment_status: str
    payment_id: str
    address_id: int
    total_cents: int
    currency: str
    lines: list[OrderLineReadDTO] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
