"""Pydantic schemas for the address book."""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

PIN_CODE_RE = re.compile(r"^[0-9]{5,10}$")
MOBILE_RE = re.compile(r"^\+?[0-9]{7,15}$")


class AddressIn(BaseModel):
    """Address payload; every field is required and trimmed."""

    address_line1: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    pin_code: str
    country: str = Field(default="India", min_length=1, max_length=100)
    mobile: str

    @field_validator("address_line1", "city", "state", "country", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("pin_code")
    @classmethod
    def validate_pin_code(cls, v: str) -> str:
        v2 = v.strip()
        if not PIN_CODE_RE.match(v2):
            raise ValueError("Pin code must be a number between 5 to 10 characters.")
        return v2

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, v: str) -> str:
        v2 = re.sub(r"[\s-]", "", v)
        if not MOBILE_RE.match(v2):
            raise ValueError("Invalid mobile number format.")
        return v2


class AddressOut(BaseModel):
    id: int
    address_line1: str
    city: str
    state: str
    pin_code: str
    country: str
    mobile: str
    user_id: Optional[int] = None
