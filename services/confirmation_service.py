# services/confirmation_service.py
"""
Payment confirmation - the webhook and the redirect poll.

Both entry points resolve a checkout session to its authoritative state and
hand it to confirm_session, which feeds the idempotent ledger writer. Either
may arrive first, twice, or at the same time as the other.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from models import ConfirmationSource, Investment, PaymentStatus
from services.exceptions import SignatureError, ValidationError
from services.ledger_service import LedgerOutcome, record_payment
from services.payment_gateway import CheckoutSession, StripeGateway, session_from_event

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationResult:
     session_id: str
     payment_status: PaymentStatus
     outcome: LedgerOutcome
     investment: Optional[Investment] = None


def _parse_id(value: Optional[str], name: str, required: bool) -> Optional[int]:
     if value is None or str(value).strip() == "":
          if required:
               raise ValidationError(f"Session metadata is missing {name}")
          return None
     try:
          parsed = int(str(value).strip())
     except ValueError:
          raise ValidationError(f"Session metadata has invalid {name}: {value!r}")
     if parsed <= 0:
          raise ValidationError(f"Session metadata has invalid {name}: {value!r}")
     return parsed


def confirm_session(db: Session, session: CheckoutSession, source: ConfirmationSource) -> ConfirmationResult:
     """
     Record a checkout session in the ledger.

     Metadata is untrusted: ids are re-parsed and the writer re-checks the
     startup and amount. The processor's amount_total wins over the metadata
     amount when both are present.
     """
     if session.status != PaymentStatus.COMPLETED:
          result = record_payment(
               db, session.session_id, None, None, session.amount_total or 0, session.status, source=source,
          )
          return ConfirmationResult(session.session_id, session.status, result.outcome)

     metadata = session.metadata or {}
     startup_id = _parse_id(metadata.get("startup_id"), "startup_id", required=True)
     investor_id = _parse_id(metadata.get("investor_id"), "investor_id", required=False)
     amount = session.amount_total if session.amount_total is not None else metadata.get("amount")
     if session.amount_total is not None and metadata.get("amount") not in (None, ""):
          if str(session.amount_total) != metadata.get("amount"):
               logger.warning(
                    "Amount mismatch session=%s metadata=%s processor=%s",
                    session.session_id, metadata.get("amount"), session.amount_total,
               )

     result = record_payment(
          db,
          session_handle=session.session_id,
          investor_id=investor_id,
          startup_id=startup_id,
          amount=amount,
          status=session.status,
          source=source,
          currency=session.currency or "usd",
     )
     return ConfirmationResult(session.session_id, session.status, result.outcome, result.investment)


def handle_webhook(db: Session, gateway: StripeGateway, payload: bytes, signature: Optional[str]) -> Optional[ConfirmationResult]:
     """
     Verify and process one webhook delivery.

     Returns None for events that are not checkout completions.

     Raises:
          SignatureError: the delivery is not authentic; nothing is written.
          ValidationError: authentic completion that cannot be recorded
               (bad metadata, unknown startup); logged with its session id.
     """
     try:
          event = gateway.construct_event(payload, signature)
     except SignatureError as e:
          logger.warning("Rejected webhook delivery: %s", e)
          raise

     session = session_from_event(event)
     if session is None:
          logger.info("Ignoring webhook event type=%s", event.get("type") if isinstance(event, dict) else None)
          return None
     try:
          return confirm_session(db, session, ConfirmationSource.WEBHOOK)
     except ValidationError as e:
          logger.error(
               "Webhook session rejected session=%s startup_id=%s amount=%s: %s",
               session.session_id, session.metadata.get("startup_id"), session.amount_total, e,
          )
          raise


def verify_session(db: Session, gateway: StripeGateway, session_id: str) -> ConfirmationResult:
     """
     Poll path: re-fetch the session from the processor and record it.

     Raises:
          ValidationError: missing session id.
          UpstreamUnavailable: processor unreachable; nothing is written.
     """
     if not session_id or not session_id.strip():
          raise ValidationError("session_id is required")
     session = gateway.retrieve_session(session_id.strip())
     return confirm_session(db, session, ConfirmationSource.POLL)
