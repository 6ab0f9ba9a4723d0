"""Field types and validators shared by several schema modules."""

from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, Field


def _digits_only(value: str) -> str:
    value = value.strip()
    if not value.isdigit():
        raise ValueError("must contain digits only")
    return value


# Any digits-only phone number (agents, super users)
DigitsPhone = Annotated[str, Field(min_length=7, max_length=15), AfterValidator(_digits_only)]

# Mobile-money numbers are exactly 10 digits ("07XXXXXXXX")
MomoPhone = Annotated[
    str, Field(min_length=10, max_length=10, examples=["0781234567"]), AfterValidator(_digits_only)
]

# Amounts are whole Rwandan francs
Amount = Annotated[int, Field(ge=0, description="Amount in RWF", examples=[1500])]
