"""Validation package."""

from streamshare.validation.validator import (
    ValidationError,
    parse_cost,
    validate_member_input,
    validate_name,
    validate_service_input,
)

__all__ = [
    "ValidationError",
    "parse_cost",
    "validate_member_input",
    "validate_name",
    "validate_service_input",
]
