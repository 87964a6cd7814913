"""Gateway-backed ordering: checkout, status convergence and tokenized payments.

An order paid through HyperPay exists before the payment does. Three sources
can settle it: the guest app polling the status, the gateway's signed
callback, and the background sweep. They all go through ``apply_outcome``,
which relies on ``finalize_payment`` so only the first one wins.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hotel_api.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from hotel_api.core.rbac import GuestPrincipal
from hotel_api.models.order import FoodOrder, OrderStatus, PaymentMethod, PaymentStatus
from hotel_api.schemas.payment import BillingAddress, CheckoutRequest
from hotel_api.services.broadcaster import Broadcaster
from hotel_api.services.hyperpay_service import (
    HyperPayService,
    PaymentOutcome,
    classify_result_code,
    result_code_of,
    verify_webhook_signature,
)
from hotel_api.services.order_service import OrderService, finalize_payment, price_cart, serialize_order

logger = logging.getLogger(__name__)


@dataclass
class Settlement:
    """What a status check found and whether it changed the order."""

    order: FoodOrder
    outcome: PaymentOutcome
    gateway_payload: Optional[Dict[str, Any]]
    applied: bool


def _billing_dict(billing: Optional[BillingAddress]) -> Optional[Dict[str, str]]:
    return billing.model_dump() if billing is not None else None


def _stored_outcome(order: FoodOrder) -> PaymentOutcome:
    if order.payment_status == PaymentStatus.SUCCESS.value:
        return PaymentOutcome.SUCCESS
    if order.payment_status == PaymentStatus.PENDING.value:
        return PaymentOutcome.PENDING
    return PaymentOutcome.FAILURE


class PaymentService:
    """Orchestrates HyperPay calls around food orders."""

    def __init__(self, db: Session, gateway: HyperPayService, broadcaster: Broadcaster):
        self.db = db
        self.gateway = gateway
        self.broadcaster = broadcaster
        self.orders = OrderService(db, broadcaster)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_checkout(self, guest: GuestPrincipal, payload: CheckoutRequest) -> tuple[FoodOrder, Dict[str, Any]]:
        """Persist a provisional order, then prepare the gateway checkout for it.

        If the gateway call fails the order stays pending without a checkout
        id and the sweep cancels it after the grace window.
        """
        guest_id, room = self.orders.resolve_destination(guest, payload.room_number)
        snapshot, total = price_cart(self.db, payload.items)

        order = FoodOrder(
            guest_id=guest_id,
            room_number=room,
            items=snapshot,
            total_amount=total,
            notes=payload.notes,
            payment_method=PaymentMethod.HYPERPAY,
            payment_status=PaymentStatus.PENDING,
            currency=payload.currency,
            status=OrderStatus.PENDING,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)

        response = self.gateway.create_checkout(
            amount=total,
            currency=order.currency,
            merchant_transaction_id=str(order.id),
            customer_email=payload.customer_email,
            billing=_billing_dict(payload.billing_address),
        )

        order.checkout_id = response.get("id")
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Checkout {order.checkout_id} prepared for order {order.id} ({total} {order.currency})")
        return order, response

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def apply_outcome(self, order: FoodOrder, payload: Dict[str, Any]) -> Settlement:
        """Persist a classified gateway result through the write-once guard."""
        outcome = classify_result_code(result_code_of(payload))

        if outcome == PaymentOutcome.PENDING:
            return Settlement(order, outcome, payload, applied=False)

        if outcome == PaymentOutcome.SUCCESS:
            values = {
                "payment_status": PaymentStatus.SUCCESS.value,
                "status": OrderStatus.PENDING.value,
                "transaction_id": payload.get("id"),
                "payment_response": payload,
            }
        else:
            values = {
                "payment_status": PaymentStatus.FAILED.value,
                "status": OrderStatus.CANCELLED.value,
                "payment_response": payload,
            }

        applied = finalize_payment(self.db, order.id, values)
        self.db.refresh(order)

        if applied:
            logger.info(
                f"Order {order.id} payment {order.payment_status} "
                f"(result {result_code_of(payload)})"
            )
            if outcome == PaymentOutcome.SUCCESS:
                self.orders.announce_new_order(order)
            else:
                self.broadcaster.emit("order-status-changed", serialize_order(order))
        return Settlement(order, _stored_outcome(order), payload, applied)

    def poll_status(self, guest: GuestPrincipal, checkout_id: str) -> Settlement:
        order = self.db.scalar(select(FoodOrder).where(FoodOrder.checkout_id == checkout_id))
        if order is None:
            raise NotFoundError("Order not found for this checkout ID")
        if order.guest_id != guest.id:
            raise AuthorizationError("Not authorized to access this payment")

        if order.is_finalized:
            return Settlement(order, _stored_outcome(order), order.payment_response, applied=False)

        payload = self.gateway.get_payment_status(checkout_id, order.currency)
        return self.apply_outcome(order, payload)

    def handle_callback(self, order_id: int, raw_body: bytes, signature: Optional[str]) -> Settlement:
        """Process a gateway push. The body is trusted only after the HMAC check."""
        if not verify_webhook_signature(raw_body, signature):
            logger.warning(f"Rejected payment callback for order {order_id}: invalid signature")
            raise AuthenticationError("Invalid webhook signature")

        try:
            body = json.loads(raw_body or b"{}")
        except ValueError:
            raise ValidationError("Malformed callback body")
        checkout_id = body.get("checkoutId") if isinstance(body, dict) else None

        order = self.db.get(FoodOrder, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if not checkout_id or order.checkout_id != checkout_id:
            logger.warning(f"Callback checkout mismatch for order {order_id}")
            raise ValidationError("Checkout ID mismatch")

        if order.is_finalized:
            return Settlement(order, _stored_outcome(order), order.payment_response, applied=False)

        # The order's own currency selects the entity; the callback body is not consulted
        payload = self.gateway.get_payment_status(checkout_id, order.currency)
        return self.apply_outcome(order, payload)

    def resync(self, order_id: int) -> tuple[Settlement, str]:
        """Console action: fetch the gateway's view and apply it if still open."""
        order = self.db.get(FoodOrder, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if not order.checkout_id:
            raise ValidationError("No checkoutId found for this order")

        old_status = order.payment_status
        payload = self.gateway.get_payment_status(order.checkout_id, order.currency)
        if order.is_finalized:
            return Settlement(order, _stored_outcome(order), payload, applied=False), old_status
        return self.apply_outcome(order, payload), old_status

    # ------------------------------------------------------------------
    # Tokenization
    # ------------------------------------------------------------------

    def create_registration(self, customer_email: Optional[str], billing: Optional[BillingAddress]) -> Dict[str, Any]:
        response = self.gateway.create_registration(customer_email, _billing_dict(billing))
        return {
            "success": True,
            "checkout_id": response.get("id"),
            "script_url": self.gateway.registration_widget_url(response.get("id")),
        }

    def registration_status(self, checkout_id: str) -> Dict[str, Any]:
        payload = self.gateway.get_registration_status(checkout_id)
        success = classify_result_code(result_code_of(payload)) == PaymentOutcome.SUCCESS
        if success and payload.get("id"):
            logger.info(f"Card registration {payload['id']} completed for checkout {checkout_id}")
        return {
            "success": success,
            "result": payload.get("result"),
            "registration_id": payload.get("id"),
            "card": payload.get("card"),
            "payment_brand": payload.get("paymentBrand"),
        }

    def pay_with_token(self, registration_id: str, amount, currency: str, payment_brand: str) -> Dict[str, Any]:
        payload = self.gateway.pay_with_token(registration_id, amount, currency, payment_brand)
        outcome = classify_result_code(result_code_of(payload))
        return {
            "success": outcome == PaymentOutcome.SUCCESS,
            "pending": outcome == PaymentOutcome.PENDING,
            "payment_status": outcome.value,
            "result": payload.get("result"),
            "transaction_id": payload.get("id"),
        }
