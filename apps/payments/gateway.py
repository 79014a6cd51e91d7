"""
Stripe Connect charge gateway

Guests are charged directly on the host's connected account, with the
platform keeping an application fee. When DEBUG is on or no secret key
is configured the gateway emulates Stripe locally.
"""

import logging
import uuid
from typing import Optional

import requests
from django.conf import settings

from apps.bookings.application.ports import ChargeError, ChargeReceipt

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.stripe.com/v1/"
DEFAULT_TIMEOUT = 30

# Test-mode source Stripe always declines; honoured in emulation too.
DECLINED_SOURCE = "tok_chargeDeclined"


class StripeChargeGateway:
    def __init__(
        self,
        secret_key: str = "",
        *,
        api_base_url: str = DEFAULT_API_BASE_URL,
        currency: str = "gbp",
        timeout: float = DEFAULT_TIMEOUT,
        emulate: Optional[bool] = None,
    ):
        self.secret_key = secret_key
        self.api_base_url = api_base_url if api_base_url.endswith("/") else f"{api_base_url}/"
        self.currency = currency
        self.timeout = timeout
        self.emulate = (not secret_key) if emulate is None else emulate

    @classmethod
    def from_settings(cls) -> "StripeChargeGateway":
        secret_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        return cls(
            secret_key,
            api_base_url=getattr(settings, "STRIPE_API_BASE_URL", DEFAULT_API_BASE_URL),
            currency=getattr(settings, "STRIPE_CURRENCY", "gbp"),
            timeout=getattr(settings, "STRIPE_TIMEOUT", DEFAULT_TIMEOUT),
            emulate=settings.DEBUG or not secret_key,
        )

    def charge(
        self,
        *,
        amount: int,
        payment_source: str,
        host_payout_token: str,
        application_fee: int = 0,
        idempotency_key: Optional[str] = None,
    ) -> ChargeReceipt:
        """
        Charge the guest's payment source on the host's account.

        Args:
            amount: Total in the smallest currency unit
            payment_source: Card token from the client
            host_payout_token: Connected account id of the host
            application_fee: Platform share of the amount
            idempotency_key: Sent as Idempotency-Key so a repeated request
                cannot charge twice

        Raises:
            ChargeError: declined (``declined=True``), network error or
                unexpected response
        """
        logger.info(f"Charging {amount} {self.currency} to account {host_payout_token}")

        if self.emulate:
            logger.warning("Stripe emulation in use (DEBUG or no secret key)")
            if payment_source == DECLINED_SOURCE:
                raise ChargeError("Your card was declined.", declined=True)
            charge_id = f"ch_emulated_{uuid.uuid4().hex[:16]}"
            logger.info(f"Emulated charge created: {charge_id}")
            return ChargeReceipt(charge_id=charge_id, amount=amount)

        payload = {
            "amount": amount,
            "currency": self.currency,
            "source": payment_source,
        }
        if application_fee:
            payload["application_fee_amount"] = application_fee

        result = self._post("charges", payload, host_payout_token, idempotency_key)

        if result.get("status") != "succeeded" or not result.get("paid", True):
            message = result.get("failure_message") or f"Charge status {result.get('status')}"
            raise ChargeError(message, declined=True)

        logger.info(f"Stripe charge succeeded: {result['id']}")
        return ChargeReceipt(
            charge_id=result["id"],
            amount=result.get("amount", amount),
            status=result["status"],
        )

    def refund(self, *, charge_id: str, amount: int, host_payout_token: str) -> str:
        logger.info(f"Refunding {amount} {self.currency} of charge {charge_id}")

        if self.emulate:
            refund_id = f"re_emulated_{uuid.uuid4().hex[:16]}"
            logger.info(f"Emulated refund created: {refund_id}")
            return refund_id

        result = self._post(
            "refunds",
            {"charge": charge_id, "amount": amount},
            host_payout_token,
            idempotency_key=f"refund-{charge_id}",
        )
        logger.info(f"Stripe refund created: {result['id']}")
        return result["id"]

    def _post(
        self,
        endpoint: str,
        payload: dict,
        host_payout_token: str,
        idempotency_key: Optional[str] = None,
    ) -> dict:
        headers = {"Stripe-Account": host_payout_token}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            response = requests.post(
                f"{self.api_base_url}{endpoint}",
                data=payload,
                headers=headers,
                auth=(self.secret_key, ""),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Stripe {endpoint} request timed out: {e}")
            raise ChargeError(f"Stripe did not answer within {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error talking to Stripe: {e}")
            raise ChargeError(f"Could not reach Stripe: {e}") from e

        try:
            result = response.json()
        except ValueError as e:
            raise ChargeError(f"Stripe returned a non-JSON response ({response.status_code})") from e

        if response.status_code >= 400:
            error = result.get("error", {})
            message = error.get("message", "Unknown error")
            declined = response.status_code == 402 or error.get("type") == "card_error"
            logger.error(f"Stripe {endpoint} failed ({response.status_code}): {message}")
            raise ChargeError(f"Stripe error: {message}", declined=declined)

        return result
