"""
Input Validation

Validation runs before any store call. Missing or malformed input is
refused locally with a ValidationError; nothing is sent to the store
and local state is untouched.

Validation NEVER silently fixes values beyond trimming whitespace and
coercing a numeric cost string to a Decimal.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Union


MAX_NAME_LENGTH = 100


class ValidationError(Exception):
    """Missing or malformed user input."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def validate_name(value: Any, field: str = "name") -> str:
    """
    Require a non-blank name.

    Returns:
        The name with surrounding whitespace removed
    """
    if value is None or not str(value).strip():
        raise ValidationError(field, f"{field.capitalize()} is required")

    name = str(value).strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            field,
            f"{field.capitalize()} must be at most {MAX_NAME_LENGTH} characters",
        )
    return name


def parse_cost(value: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Coerce a cost entered by the user into a positive Decimal.

    Accepts numbers or numeric strings, optionally prefixed with "$".
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("cost", "Cost is required")
    if isinstance(value, bool):
        raise ValidationError("cost", "Cost must be a number")

    text = str(value).strip().lstrip("$").strip()
    try:
        cost = Decimal(text)
    except InvalidOperation:
        raise ValidationError("cost", f"Cost must be a number, got {value!r}")

    if not cost.is_finite():
        raise ValidationError("cost", "Cost must be a finite number")
    if cost <= 0:
        raise ValidationError("cost", "Cost must be greater than zero")
    return cost


def validate_service_input(name: Any, cost: Any) -> tuple[str, Decimal]:
    """Validate the add-service form: both fields are required."""
    return validate_name(name), parse_cost(cost)


def validate_member_input(name: Any) -> str:
    """Validate the add-member form."""
    return validate_name(name)
