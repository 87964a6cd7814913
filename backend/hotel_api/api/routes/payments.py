"""HyperPay payment routes: checkout, status, gateway callback and saved cards."""

import logging

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from hotel_api.core.rbac import CurrentGuest, CurrentPrincipal
from hotel_api.db.session import DbSession
from hotel_api.schemas.payment import (
    CallbackResponse,
    CheckoutRequest,
    CheckoutResponse,
    PaymentStatusResponse,
    RegistrationRequest,
    RegistrationResponse,
    RegistrationStatusResponse,
    TokenPaymentRequest,
    TokenPaymentResponse,
)
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster
from hotel_api.services.hyperpay_service import (
    SIGNATURE_HEADER,
    HyperPayService,
    PaymentOutcome,
    get_payment_gateway,
)
from hotel_api.services.payment_service import PaymentService, Settlement

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_body(settlement: Settlement) -> PaymentStatusResponse:
    payload = settlement.gateway_payload or {}
    order = settlement.order
    return PaymentStatusResponse(
        success=settlement.outcome == PaymentOutcome.SUCCESS,
        pending=settlement.outcome == PaymentOutcome.PENDING,
        payment_status=order.payment_status,
        result=payload.get("result"),
        transaction_id=order.transaction_id or payload.get("id"),
        payment_brand=payload.get("paymentBrand"),
        amount=payload.get("amount"),
        currency=payload.get("currency") or order.currency,
        order_id=order.id,
    )


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
def create_checkout(
    payload: CheckoutRequest,
    guest: CurrentGuest,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Create a provisional order and the gateway checkout that will pay for it.

    The order is not shown to the kitchen until the payment succeeds.
    """
    order, response = PaymentService(db, gateway, broadcaster).create_checkout(guest, payload)
    return CheckoutResponse(
        success=True,
        checkout_id=order.checkout_id,
        integrity=response.get("integrity"),
        order_id=order.id,
        amount=gateway.checkout_amount(order.total_amount),
        currency=order.currency,
        result=response.get("result"),
    )


@router.get("/status/{checkout_id}", response_model=PaymentStatusResponse)
def get_payment_status(
    checkout_id: str,
    guest: CurrentGuest,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    settlement = PaymentService(db, gateway, broadcaster).poll_status(guest, checkout_id)
    return _status_body(settlement)


@router.post("/callback/{order_id}", response_model=CallbackResponse)
async def payment_callback(
    order_id: int,
    request: Request,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Server-to-server notification from the gateway.

    The signature covers the raw body bytes, so the body is read before any
    parsing. Gateway and database work is synchronous and runs off the loop.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    service = PaymentService(db, gateway, broadcaster)
    settlement = await run_in_threadpool(service.handle_callback, order_id, raw_body, signature)
    return CallbackResponse(
        success=settlement.outcome == PaymentOutcome.SUCCESS,
        payment_status=settlement.order.payment_status,
        order_id=settlement.order.id,
    )


@router.post("/registration", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
def create_registration(
    payload: RegistrationRequest,
    principal: CurrentPrincipal,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Start a card-tokenization checkout (no charge)."""
    email = payload.customer_email or principal.email
    return PaymentService(db, gateway, broadcaster).create_registration(email, payload.billing_address)


@router.get("/registration/{checkout_id}", response_model=RegistrationStatusResponse)
def get_registration_status(
    checkout_id: str,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    return PaymentService(db, gateway, broadcaster).registration_status(checkout_id)


@router.post("/token", response_model=TokenPaymentResponse)
def pay_with_saved_card(
    payload: TokenPaymentRequest,
    principal: CurrentPrincipal,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    result = PaymentService(db, gateway, broadcaster).pay_with_token(
        payload.registration_id, payload.amount, payload.currency.value, payload.payment_brand,
    )
    logger.info(
        f"Saved-card payment by {principal.role} {principal.id}: "
        f"{payload.amount} {payload.currency.value} -> {result['payment_status']}"
    )
    return result
