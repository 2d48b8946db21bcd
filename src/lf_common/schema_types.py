"""Reusable pydantic field types for request bodies.

Micro-unit quantities arrive either as JSON integers or as decimal-digit
strings (large values survive JavaScript clients that way). Floats and
booleans are rejected outright so no binary fraction reaches the core.
Values are capped at the BIGINT range of the columns they end up in.
"""

from typing import Annotated

from pydantic import BeforeValidator, Field

from src.lf_common.units import MAX_MICRO_UNITS


def _coerce_micro_units(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError("must be an integer number of micro-units")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    raise ValueError("must be an integer number of micro-units or a string of digits")


MicroUnits = Annotated[
    int, BeforeValidator(_coerce_micro_units), Field(ge=0, le=MAX_MICRO_UNITS)
]
PositiveMicroUnits = Annotated[
    int, BeforeValidator(_coerce_micro_units), Field(gt=0, le=MAX_MICRO_UNITS)
]
