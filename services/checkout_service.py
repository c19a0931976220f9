# services/checkout_service.py
"""
Checkout Service - opens payment sessions for investor pledges.

Validates the pledge locally before the processor is contacted and embeds
the investor/startup identity as session metadata so the confirmation
paths can rebuild the investment without a separate lookup. Never touches
the ledger.
"""
import logging
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.orm import Session

from models import Startup
from services.exceptions import ValidationError
from services.ledger_service import normalize_amount
from services.payment_gateway import CheckoutSession, StripeGateway, validate_charge_amount

logger = logging.getLogger(__name__)


def build_session_metadata(startup: Startup, amount: Decimal, investor_id: Optional[int]) -> dict:
     """Correlation metadata carried through the processor (all values are strings)."""
     return {
          "investor_id": str(investor_id) if investor_id is not None else "",
          "startup_id": str(startup.id),
          "amount": str(amount),
          "startup_name": startup.startup_name or "",
     }


def create_checkout_session(
     db: Session,
     gateway: StripeGateway,
     amount: Union[Decimal, int, float, str, None],
     startup_id: Optional[int],
     currency: Optional[str],
     investor_id: Optional[int] = None,
) -> CheckoutSession:
     """
     Open a checkout session for a pledged amount against a startup.

     Raises:
          ValidationError: non-positive or out-of-range amount, missing currency,
               missing or unknown startup, or a checkout the processor rejects.
          UpstreamUnavailable: the processor could not be reached.
     """
     amount = normalize_amount(amount)
     if not startup_id:
          raise ValidationError("startup_id is required")
     if not currency or not currency.strip():
          raise ValidationError("currency is required")
     currency = currency.strip().lower()
     validate_charge_amount(amount, currency)

     startup = db.query(Startup).filter(Startup.id == startup_id).first()
     if not startup:
          raise ValidationError(f"Startup with ID {startup_id} not found")

     metadata = build_session_metadata(startup, amount, investor_id)
     session = gateway.create_session(amount, currency, metadata)
     logger.info(
          "Checkout session opened session=%s startup_id=%s investor_id=%s amount=%s %s",
          session.session_id, startup.id, investor_id, amount, currency,
     )
     return session
