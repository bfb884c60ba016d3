"""Pydantic schemas for cart requests."""

from pydantic import BaseModel, Field


class AddToCartIn(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, gt=0)


class UpdateCartItemIn(BaseModel):
    quantity: int = Field(gt=0)


class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    price_cents: int
    count_in_stock: int
    quantity: int
    line_total_cents: int
