"""Payment schemas."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from hotel_api.models.order import Currency
from hotel_api.schemas.order import OrderLineRequest


class BillingAddress(BaseModel):
    given_name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    street1: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2, max_length=2)  # ISO alpha-2
    postcode: str = Field(..., min_length=1)


class CheckoutRequest(BaseModel):
    items: List[OrderLineRequest] = Field(..., min_length=1)
    room_number: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=1000)
    currency: Currency = Currency.AED
    customer_email: EmailStr
    billing_address: BillingAddress


class CheckoutResponse(BaseModel):
    success: bool
    checkout_id: str
    integrity: Optional[str] = None
    order_id: int
    amount: str
    currency: Currency
    result: Optional[Dict[str, Any]] = None


class PaymentStatusResponse(BaseModel):
    success: bool
    pending: bool
    payment_status: str
    result: Optional[Dict[str, Any]] = None
    transaction_id: Optional[str] = None
    payment_brand: Optional[str] = None
    amount: Optional[str] = None
    currency: Optional[str] = None
    order_id: int


class CallbackResponse(BaseModel):
    success: bool
    payment_status: str
    order_id: int


class RegistrationRequest(BaseModel):
    customer_email: Optional[EmailStr] = None
    billing_address: Optional[BillingAddress] = None


class RegistrationResponse(BaseModel):
    success: bool
    checkout_id: str
    script_url: str


class RegistrationStatusResponse(BaseModel):
    success: bool
    result: Optional[Dict[str, Any]] = None
    registration_id: Optional[str] = None
    card: Optional[Dict[str, Any]] = None
    payment_brand: Optional[str] = None


class TokenPaymentRequest(BaseModel):
    registration_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    currency: Currency = Currency.AED
    payment_brand: str = "VISA"


class TokenPaymentResponse(BaseModel):
    success: bool
    pending: bool
    payment_status: str
    result: Optional[Dict[str, Any]] = None
    transaction_id: Optional[str] = None
