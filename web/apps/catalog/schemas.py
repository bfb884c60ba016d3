"""Pydantic schemas for the catalog."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ProductIn(BaseModel):
    """Product create/update payload.

    Attributes:
        name: At least 3 characters.
        description: At least 10 characters.
        brand: Optional brand label.
        price_cents: Unit price in minor units, not negative.
        count_in_stock: Initial / corrected stock, not negative.
        categories: Category slugs; must exist and be unique.
    """

    name: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10)
    brand: str = Field(default="", max_length=100)
    price_cents: int = Field(ge=0)
    count_in_stock: int = Field(ge=0)
    categories: list[str] = []

    @field_validator("name", "description", "brand", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("categories")
    @classmethod
    def unique_categories(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("Duplicate categories are not allowed.")
        return v


class StockIn(BaseModel):
    count_in_stock: int = Field(ge=0)


class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CategoryOut(BaseModel):
    id: int
    name: str
    slug: str


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    brand: str
    price_cents: int
    count_in_stock: int
    categories: list[CategoryOut] = []
    currency: Optional[str] = None
    rating: float = 0
    num_reviews: int = 0


class ReviewIn(BaseModel):
    """Review create payload.

    Attributes:
        product_id: Reviewed product; must exist.
        rating: Integer from 1 to 5.
        comment: Trimmed, at least 3 characters.
    """

    product_id: int = Field(gt=0)
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=3, max_length=2000)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReviewUpdateIn(BaseModel):
    """Partial review update; omitted fields keep their value."""

    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, min_length=3, max_length=2000)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReviewOut(BaseModel):
    id: int
    product_id: int
    user_id: int
    user_name: str
    rating: int
    comment: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
