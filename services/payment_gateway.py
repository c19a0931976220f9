# services/payment_gateway.py
"""
Stripe Checkout gateway.

Thin wrapper over the stripe library: opens hosted checkout sessions,
retrieves their authoritative status, and verifies webhook signatures.
Everything returned to the rest of the app is a plain CheckoutSession so
the ledger never sees stripe objects.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe
from dotenv import load_dotenv

from models import PaymentStatus
from services.exceptions import NotFoundError, SignatureError, UpstreamUnavailable, ValidationError

load_dotenv()

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_TIMEOUT = int(os.getenv("STRIPE_TIMEOUT", "10"))
CHECKOUT_SUCCESS_URL = os.getenv(
     "CHECKOUT_SUCCESS_URL",
     "http://localhost:5173/payment-success?session_id={CHECKOUT_SESSION_ID}",
)
CHECKOUT_CANCEL_URL = os.getenv("CHECKOUT_CANCEL_URL", "http://localhost:5173/payment-cancel")

# Seconds a signed webhook timestamp stays valid
WEBHOOK_TOLERANCE = 300

# Events that mean the money has moved for a checkout session
COMPLETED_EVENTS = (
     "checkout.session.completed",
     "checkout.session.async_payment_succeeded",
)

# Stripe charges these in whole units (no minor unit)
ZERO_DECIMAL_CURRENCIES = frozenset({
     "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
     "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})
THREE_DECIMAL_CURRENCIES = frozenset({"bhd", "jod", "kwd", "omr", "tnd"})

# Stripe rejects unit_amount above 8 digits
MAX_MINOR_UNITS = 99_999_999


@dataclass
class CheckoutSession:
     """Processor-neutral view of a checkout session."""
     session_id: str
     status: PaymentStatus
     metadata: Dict[str, str] = field(default_factory=dict)
     amount_total: Optional[Decimal] = None
     currency: Optional[str] = None
     redirect_url: Optional[str] = None


def minor_unit_exponent(currency: Optional[str]) -> int:
     code = (currency or "usd").lower()
     if code in ZERO_DECIMAL_CURRENCIES:
          return 0
     if code in THREE_DECIMAL_CURRENCIES:
          return 3
     return 2


def to_minor_units(amount: Decimal, currency: Optional[str] = "usd") -> int:
     """Convert an amount to the integer minor units Stripe expects for the currency."""
     return int((Decimal(amount) * (10 ** minor_unit_exponent(currency))).to_integral_value())


def from_minor_units(value: int, currency: Optional[str] = "usd") -> Decimal:
     return (Decimal(value) / (10 ** minor_unit_exponent(currency))).quantize(Decimal("0.01"))


def validate_charge_amount(amount: Decimal, currency: str) -> None:
     """
     Reject amounts Stripe cannot charge in this currency.

     Zero-decimal currencies take whole amounts only, and no currency may
     exceed MAX_MINOR_UNITS.
     """
     if minor_unit_exponent(currency) == 0 and Decimal(amount) != Decimal(amount).to_integral_value():
          raise ValidationError(f"{currency.upper()} amounts must be whole numbers")
     if to_minor_units(amount, currency) > MAX_MINOR_UNITS:
          raise ValidationError(f"Amount exceeds the processor limit for {currency.upper()}")


def _field(obj: Any, name: str, default: Any = None) -> Any:
     """Read a field from a plain dict or a StripeObject."""
     try:
          value = obj[name]
     except (KeyError, TypeError):
          return default
     return default if value is None else value


def session_status(session: Any) -> PaymentStatus:
     """
     Map Stripe's (status, payment_status) pair onto PaymentStatus.

     paid / no_payment_required -> completed, expired -> failed, anything else pending.
     """
     payment_status = _field(session, "payment_status")
     if payment_status in ("paid", "no_payment_required"):
          return PaymentStatus.COMPLETED
     if _field(session, "status") == "expired":
          return PaymentStatus.FAILED
     return PaymentStatus.PENDING


def to_checkout_session(session: Any) -> CheckoutSession:
     amount_total = _field(session, "amount_total")
     currency = _field(session, "currency")
     metadata = _field(session, "metadata", {})
     if not isinstance(metadata, dict) and hasattr(metadata, "to_dict"):
          metadata = metadata.to_dict()
     return CheckoutSession(
          session_id=_field(session, "id"),
          status=session_status(session),
          metadata={str(k): str(v) for k, v in dict(metadata).items()},
          amount_total=from_minor_units(amount_total, currency) if amount_total is not None else None,
          currency=currency,
          redirect_url=_field(session, "url"),
     )


def session_from_event(event: Any) -> Optional[CheckoutSession]:
     """Return the checkout session carried by a completion event, else None."""
     if _field(event, "type") not in COMPLETED_EVENTS:
          return None
     session = _field(_field(event, "data", {}), "object")
     if session is None:
          return None
     return to_checkout_session(session)


class StripeGateway:
     """Stripe-backed payment processor."""

     def __init__(
          self,
          api_key: Optional[str] = None,
          webhook_secret: Optional[str] = None,
          success_url: str = CHECKOUT_SUCCESS_URL,
          cancel_url: str = CHECKOUT_CANCEL_URL,
          timeout: int = STRIPE_TIMEOUT,
     ):
          self.api_key = api_key or STRIPE_SECRET_KEY
          self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET
          self.success_url = success_url
          self.cancel_url = cancel_url
          if self.api_key:
               stripe.api_key = self.api_key
               stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
               stripe.max_network_retries = 1
          else:
               logger.warning("STRIPE_SECRET_KEY is not set - checkout calls will fail")

     def create_session(self, amount: Decimal, currency: str, metadata: Dict[str, str]) -> CheckoutSession:
          """Open a hosted checkout session for a single pledged amount."""
          product_name = f"Investment in {metadata.get('startup_name') or 'startup'}"
          try:
               session = stripe.checkout.Session.create(
                    mode="payment",
                    line_items=[{
                         "price_data": {
                              "currency": currency.lower(),
                              "unit_amount": to_minor_units(amount, currency),
                              "product_data": {"name": product_name},
                         },
                         "quantity": 1,
                    }],
                    metadata=metadata,
                    payment_intent_data={"metadata": metadata},
                    success_url=self.success_url,
                    cancel_url=self.cancel_url,
               )
          except stripe.InvalidRequestError as e:
               logger.warning("Stripe rejected checkout session: %s", e)
               raise ValidationError(f"Payment processor rejected the checkout: {getattr(e, 'user_message', None) or e}") from e
          except stripe.StripeError as e:
               logger.error("Stripe create session failed: %s", e)
               raise UpstreamUnavailable("Could not create checkout session") from e
          return to_checkout_session(session)

     def retrieve_session(self, session_id: str) -> CheckoutSession:
          """Fetch the authoritative state of a checkout session."""
          try:
               session = stripe.checkout.Session.retrieve(session_id)
          except stripe.InvalidRequestError as e:
               if getattr(e, "code", None) == "resource_missing":
                    raise NotFoundError(f"Checkout session {session_id} not found") from e
               logger.error("Stripe rejected session lookup %s: %s", session_id, e)
               raise UpstreamUnavailable("Could not verify checkout session") from e
          except stripe.StripeError as e:
               logger.warning("Stripe unreachable verifying session %s: %s", session_id, e)
               raise UpstreamUnavailable("Could not verify checkout session") from e
          return to_checkout_session(session)

     def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
          """
          Verify the Stripe-Signature header over the raw body and parse the event.

          Returns the event as a plain dict.
          """
          if not self.webhook_secret:
               raise SignatureError("Webhook secret is not configured")
          if not signature:
               raise SignatureError("Missing signature header")
          try:
               body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
               stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret, WEBHOOK_TOLERANCE)
               return json.loads(body)
          except stripe.SignatureVerificationError as e:
               raise SignatureError(str(e)) from e
          except (UnicodeDecodeError, ValueError) as e:
               raise SignatureError(f"Invalid payload: {e}") from e


_gateway: Optional[StripeGateway] = None


def get_gateway() -> StripeGateway:
     """FastAPI dependency returning the process-wide gateway."""
     global _gateway
     if _gateway is None:
          _gateway = StripeGateway()
     return _gateway
