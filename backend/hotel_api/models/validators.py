"""Model-level validation utilities for data integrity.

Provides reusable validators that enforce business rules at the ORM level,
preventing invalid data from reaching the database regardless of which
API endpoint or service writes the data.
"""

from decimal import Decimal


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def rating_score(key: str, value):
    """Validate that a rating value is an integer between 1 and 5."""
    if value is not None:
        if int(value) != value or not 1 <= int(value) <= 5:
            raise ValueError(f"{key} must be between 1 and 5, got {value}")
    return value


def one_of(key: str, value, allowed):
    """Validate that a string column holds one of the allowed values."""
    if value is not None:
        raw = getattr(value, "value", value)
        if raw not in {getattr(a, "value", a) for a in allowed}:
            raise ValueError(f"{key} must be one of {sorted(getattr(a, 'value', a) for a in allowed)}, got {value}")
        return raw
    return value


def validate_list_of_strings(key: str, value):
    """Validate that a JSON column value is a list of strings (or None)."""
    if value is not None:
        if not isinstance(value, list):
            raise ValueError(f"{key} must be a list, got {type(value).__name__}")
        for i, item in enumerate(value):
            if not isinstance(item, str):
                raise ValueError(f"{key}[{i}] must be a string, got {type(item).__name__}")
    return value


def validate_order_lines(key: str, value):
    """Validate the snapshotted order lines stored on a food order."""
    if value is None:
        return value
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list, got {type(value).__name__}")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ValueError(f"{key}[{i}] must be a dict, got {type(item).__name__}")
        missing = {"menu_item_id", "name", "quantity", "price"} - item.keys()
        if missing:
            raise ValueError(f"{key}[{i}] is missing {sorted(missing)}")
        if int(item["quantity"]) < 1:
            raise ValueError(f"{key}[{i}].quantity must be at least 1")
    return value
