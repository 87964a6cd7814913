"""Shared schema types."""

from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

# Amounts are stored as Numeric and returned to clients as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
