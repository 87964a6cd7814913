"""HyperPay (OPPWA) Payment Gateway Service.

Provides the COPYandPAY server-to-server calls used by room-service payments:
- Checkout preparation (``POST /v1/checkouts``)
- Payment status lookup (``GET /v1/checkouts/{id}/payment``)
- Card registration (tokenization) and its status
- Payment with a stored registration token
- Result-code classification and webhook signature verification

All requests are form-encoded, authenticated with a bearer token and scoped to
the merchant entity configured for the order currency. The service is
stateless apart from its httpx connection pool; one instance lives on
``app.state`` for the life of the process.
"""

import logging
import re
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from hotel_api.core.config import settings
from hotel_api.core.exceptions import PaymentGatewayError
from hotel_api.core.security import verify_signature

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-hyperpay-signature"

_SUCCESS_PATTERN = re.compile(r"^(000\.000\.|000\.100\.1|000\.[36])")
_PENDING_PATTERN = re.compile(r"^(000\.200)")


class PaymentOutcome(str, Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failed"


def is_payment_successful(result_code: str) -> bool:
    """Processed or successfully registered transactions."""
    return bool(_SUCCESS_PATTERN.match(result_code or ""))


def is_payment_pending(result_code: str) -> bool:
    """Transactions still waiting on the cardholder or the acquirer."""
    return bool(_PENDING_PATTERN.match(result_code or ""))


def classify_result_code(result_code: str) -> PaymentOutcome:
    """Map a dotted result code onto success, pending or failure."""
    if is_payment_successful(result_code):
        return PaymentOutcome.SUCCESS
    if is_payment_pending(result_code):
        return PaymentOutcome.PENDING
    return PaymentOutcome.FAILURE


def result_code_of(payload: Dict[str, Any]) -> str:
    return str((payload.get("result") or {}).get("code", ""))


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str] = None) -> bool:
    """Check the hex HMAC-SHA256 the gateway sends over the raw callback body.

    Fails closed: no configured secret means no callback is trusted.
    """
    secret = settings.hyperpay_webhook_secret if secret is None else secret
    if not secret:
        logger.error("Webhook secret not configured; rejecting payment callback")
        return False
    if not signature:
        logger.warning("Payment callback without signature header")
        return False
    valid = verify_signature(secret, raw_body, signature)
    if not valid:
        logger.warning("Payment callback signature mismatch")
    return valid


class HyperPayService:
    """HyperPay COPYandPAY gateway.

    Uses a synchronous httpx client; routes calling it run in the threadpool.
    ``transport`` lets tests swap in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        entity_id_aed: Optional[str] = None,
        entity_id_usd: Optional[str] = None,
        mode: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = (base_url or settings.hyperpay_base_url).rstrip("/")
        self._access_token = access_token if access_token is not None else settings.hyperpay_access_token
        self._entity_ids = {
            "AED": entity_id_aed if entity_id_aed is not None else settings.hyperpay_entity_id_aed,
            "USD": entity_id_usd if entity_id_usd is not None else settings.hyperpay_entity_id_usd,
        }
        self._mode = mode or settings.hyperpay_mode
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Accept": "application/json",
            },
            timeout=timeout or settings.hyperpay_timeout_seconds,
            transport=transport,
        )

        if not self._access_token:
            logger.warning(
                "HyperPay access token not configured. Set HYPERPAY_ACCESS_TOKEN "
                "and the HYPERPAY_ENTITY_ID_* environment variables."
            )

    @property
    def is_test_mode(self) -> bool:
        return self._mode == "test"

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._client.close()

    def _entity_id(self, currency: str) -> str:
        return self._entity_ids["AED"] if currency == "AED" else self._entity_ids["USD"]

    def _format_amount(self, amount: Decimal | str | float, for_checkout: bool = False) -> str:
        value = Decimal(str(amount))
        if for_checkout and self.is_test_mode:
            # Test entities only accept whole amounts
            return f"{value.quantize(Decimal('1'), rounding=ROUND_DOWN)}.00"
        return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

    def checkout_amount(self, amount: Decimal) -> str:
        """Amount string as sent to the gateway for a checkout."""
        return self._format_amount(amount, for_checkout=True)

    @staticmethod
    def _billing_params(customer_email: Optional[str], billing: Optional[Dict[str, str]]) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if customer_email:
            params["customer.email"] = customer_email
        if billing:
            params.update({
                "billing.street1": billing["street1"],
                "billing.city": billing["city"],
                "billing.state": billing["state"],
                "billing.country": billing["country"],
                "billing.postcode": billing["postcode"],
                "customer.givenName": billing["given_name"],
                "customer.surname": billing["surname"],
            })
        return params

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        data: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            resp = self._client.request(method, path, data=data, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            detail = ""
            try:
                detail = e.response.json().get("result", {}).get("description", "")
            except ValueError:
                detail = e.response.text[:200]
            logger.error(f"HyperPay {action} failed with HTTP {e.response.status_code}: {detail}")
            raise PaymentGatewayError() from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"HyperPay {action} failed: {e}")
            raise PaymentGatewayError() from e

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_checkout(
        self,
        amount: Decimal,
        currency: str,
        merchant_transaction_id: str,
        customer_email: Optional[str] = None,
        billing: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Prepare a debit checkout; the returned ``id`` drives the payment widget."""
        form: Dict[str, str] = {
            "entityId": self._entity_id(currency),
            "amount": self.checkout_amount(amount),
            "currency": currency,
            "paymentType": "DB",
            "integrity": "true",
            "merchantTransactionId": merchant_transaction_id,
        }
        if self.is_test_mode:
            form["testMode"] = "EXTERNAL"
            form["customParameters[3DS2_enrolled]"] = "true"
        form.update(self._billing_params(customer_email, billing))

        logger.info(
            f"HyperPay preparing checkout: amount={form['amount']} {currency} "
            f"merchantTransactionId={merchant_transaction_id} mode={self._mode}"
        )
        checkout = self._request("POST", "/v1/checkouts", "prepare checkout", data=form)
        if not checkout.get("id"):
            logger.error(f"HyperPay prepare checkout returned no checkout id: {result_code_of(checkout)}")
            raise PaymentGatewayError()
        return checkout

    def get_payment_status(self, checkout_id: str, currency: str) -> Dict[str, Any]:
        logger.info(f"HyperPay getting payment status for checkout {checkout_id}")
        return self._request(
            "GET",
            f"/v1/checkouts/{checkout_id}/payment",
            "get payment status",
            params={"entityId": self._entity_id(currency)},
        )

    # ------------------------------------------------------------------
    # Tokenization
    # ------------------------------------------------------------------

    def create_registration(
        self,
        customer_email: Optional[str] = None,
        billing: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Prepare a card-registration checkout (no charge)."""
        form: Dict[str, str] = {
            "entityId": self._entity_id("AED"),
            "createRegistration": "true",
        }
        if self.is_test_mode:
            form["testMode"] = "EXTERNAL"
        form.update(self._billing_params(customer_email, billing))

        logger.info("HyperPay creating registration session")
        return self._request("POST", "/v1/checkouts", "create registration", data=form)

    def get_registration_status(self, checkout_id: str) -> Dict[str, Any]:
        logger.info(f"HyperPay checking registration status for checkout {checkout_id}")
        return self._request(
            "GET",
            f"/v1/checkouts/{checkout_id}/registration",
            "get registration status",
            params={"entityId": self._entity_id("AED")},
        )

    def pay_with_token(
        self,
        registration_id: str,
        amount: Decimal,
        currency: str,
        payment_brand: str = "VISA",
    ) -> Dict[str, Any]:
        """Charge a stored registration as a cardholder-initiated transaction."""
        form: Dict[str, str] = {
            "entityId": self._entity_id(currency),
            "amount": self._format_amount(amount),
            "currency": currency,
            "paymentType": "DB",
            "paymentBrand": payment_brand,
            "standingInstruction.type": "UNSCHEDULED",
            "standingInstruction.mode": "INITIAL",
            "standingInstruction.source": "CIT",
        }
        if self.is_test_mode:
            form["testMode"] = "EXTERNAL"

        logger.info(f"HyperPay paying with token {registration_id}: {form['amount']} {currency}")
        return self._request(
            "POST", f"/v1/registrations/{registration_id}/payments", "pay with token", data=form,
        )

    def registration_widget_url(self, checkout_id: str) -> str:
        return f"{self._base_url}/v1/paymentWidgets.js?checkoutId={checkout_id}/registration"


def get_payment_gateway(request: Request) -> HyperPayService:
    """FastAPI dependency: the gateway client owned by the app lifespan."""
    return request.app.state.payment_gateway
