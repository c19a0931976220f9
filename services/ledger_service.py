# services/ledger_service.py
"""
Investment Ledger Service - idempotent recording of confirmed payments.

When a checkout session is observed as completed (webhook or redirect poll):
1. Skip anything that is not completed (no row, no counter change)
2. Return the existing row if the session handle is already recorded
3. Insert the investment; the unique constraint on session_handle decides races
4. Increment startups.funding_received with a single SQL delta in the same transaction

The counter is never read-modified-written in Python. reconcile_startup_funding
recomputes it from the ledger when it has drifted.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import Investment, Startup, PaymentStatus, ConfirmationSource
from services.exceptions import NotFoundError, PartialCommitInconsistency, ValidationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Largest value a Numeric(12,2) amount column holds
MAX_AMOUNT = Decimal("9999999999.99")


class LedgerOutcome(str, enum.Enum):
     """What record_payment did. All three are successful outcomes for the caller."""
     CREATED = "created"
     DUPLICATE = "duplicate"
     SKIPPED = "skipped"


@dataclass
class LedgerResult:
     outcome: LedgerOutcome
     investment: Optional[Investment] = None

     @property
     def created(self) -> bool:
          return self.outcome == LedgerOutcome.CREATED


@dataclass
class ReconcileResult:
     startup_id: int
     previous: Decimal
     current: Decimal

     @property
     def drift(self) -> Decimal:
          return self.current - self.previous


def normalize_amount(amount: Union[Decimal, int, float, str, None]) -> Decimal:
     """Parse an amount into a 2-place Decimal. Raises ValidationError unless it is positive."""
     if amount is None or isinstance(amount, bool):
          raise ValidationError("Amount is required")
     try:
          value = Decimal(str(amount)).quantize(CENT)
     except (InvalidOperation, ValueError):
          raise ValidationError(f"Invalid amount: {amount!r}")
     if not value.is_finite() or value <= 0:
          raise ValidationError("Investment amount must be positive")
     if value > MAX_AMOUNT:
          raise ValidationError(f"Investment amount exceeds the maximum of {MAX_AMOUNT}")
     return value


# ---------------------------------------------------------------------------
# Store primitives
# ---------------------------------------------------------------------------

def find_by_session_handle(db: Session, session_handle: str) -> Optional[Investment]:
     """Return the investment recorded for a checkout session, if any."""
     return db.execute(
          select(Investment).where(Investment.session_handle == session_handle)
     ).scalar_one_or_none()


def startup_exists(db: Session, startup_id: int) -> bool:
     return db.execute(
          select(Startup.id).where(Startup.id == startup_id)
     ).first() is not None


def insert_if_absent(db: Session, investment: Investment) -> Tuple[Investment, bool]:
     """
     Insert an investment unless its session handle is already taken.

     Returns (investment, created). When another writer won the race the
     current transaction is rolled back and the winner's row is returned
     with created=False. IntegrityErrors unrelated to the session handle
     are re-raised.
     """
     db.add(investment)
     try:
          db.flush()
     except IntegrityError:
          db.rollback()
          existing = find_by_session_handle(db, investment.session_handle)
          if existing is None:
               raise
          return existing, False
     return investment, True


def increment_funding(db: Session, startup_id: int, amount: Decimal) -> bool:
     """
     Atomically add amount to startups.funding_received.

     Emits UPDATE ... SET funding_received = funding_received + :amount so
     concurrent increments from different sessions never lose updates.
     Returns False when no startup row was updated.
     """
     startups = Startup.__table__
     result = db.execute(
          update(startups)
          .where(startups.c.id == startup_id)
          .values(funding_received=startups.c.funding_received + amount)
     )
     return result.rowcount == 1


def ledger_total(db: Session, startup_id: int) -> Decimal:
     """Sum of completed investment amounts for a startup."""
     total = db.execute(
          select(func.coalesce(func.sum(Investment.amount), 0)).where(
               Investment.startup_id == startup_id,
               Investment.payment_status == PaymentStatus.COMPLETED,
          )
     ).scalar_one()
     return Decimal(str(total)).quantize(CENT)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

def record_payment(
     db: Session,
     session_handle: str,
     investor_id: Optional[int],
     startup_id: int,
     amount: Union[Decimal, int, float, str],
     status: Union[PaymentStatus, str],
     source: ConfirmationSource = ConfirmationSource.WEBHOOK,
     currency: str = "usd",
) -> LedgerResult:
     """
     Record a confirmed payment exactly once per checkout session.

     Safe to call any number of times, from any confirmation path, in any
     order: at most one investment row and one counter increment ever
     result for a given session_handle. Commits its own transaction.

     Raises:
          ValidationError: unknown startup, non-positive amount, bad status.
          PartialCommitInconsistency: the counter increment did not land;
               the transaction is rolled back and the caller must report failure.
     """
     if not session_handle:
          raise ValidationError("Session handle is required")
     try:
          status = PaymentStatus(status)
     except ValueError:
          raise ValidationError(f"Unknown payment status: {status!r}")

     if status != PaymentStatus.COMPLETED:
          logger.info("Ledger skip session=%s status=%s source=%s", session_handle, status.value, source.value)
          return LedgerResult(LedgerOutcome.SKIPPED)

     existing = find_by_session_handle(db, session_handle)
     if existing is not None:
          logger.info("Ledger duplicate session=%s source=%s investment_id=%s", session_handle, source.value, existing.id)
          return LedgerResult(LedgerOutcome.DUPLICATE, existing)

     amount = normalize_amount(amount)
     if startup_id is None or not startup_exists(db, startup_id):
          raise ValidationError(f"Startup with ID {startup_id} not found")

     investment, created = insert_if_absent(db, Investment(
          session_handle=session_handle,
          investor_id=investor_id,
          startup_id=startup_id,
          amount=amount,
          currency=(currency or "usd").lower(),
          payment_status=PaymentStatus.COMPLETED,
          source=source,
     ))
     if not created:
          logger.info("Ledger lost insert race session=%s source=%s investment_id=%s", session_handle, source.value, investment.id)
          return LedgerResult(LedgerOutcome.DUPLICATE, investment)

     try:
          incremented = increment_funding(db, startup_id, amount)
     except SQLAlchemyError as e:
          db.rollback()
          logger.error(
               "Partial commit: counter increment failed session=%s startup_id=%s amount=%s: %s",
               session_handle, startup_id, amount, e,
          )
          raise PartialCommitInconsistency(session_handle, startup_id, amount, reason=str(e)) from e
     if not incremented:
          db.rollback()
          logger.error(
               "Partial commit: no startup row updated session=%s startup_id=%s amount=%s",
               session_handle, startup_id, amount,
          )
          raise PartialCommitInconsistency(session_handle, startup_id, amount, reason="startup row not updated")

     db.commit()
     # The counter was changed with a Core UPDATE; drop any stale Startup state.
     db.expire_all()
     logger.info(
          "Ledger created session=%s source=%s startup_id=%s investor_id=%s amount=%s",
          session_handle, source.value, startup_id, investor_id, amount,
     )
     return LedgerResult(LedgerOutcome.CREATED, investment)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def reconcile_startup_funding(db: Session, startup_id: int) -> ReconcileResult:
     """
     Recompute funding_received from the ledger for one startup.

     The recompute is a single UPDATE with a correlated subquery, so an
     increment committed concurrently is either already in the sum or
     applied on top of it.
     """
     previous = db.execute(
          select(Startup.funding_received).where(Startup.id == startup_id)
     ).scalar_one_or_none()
     if previous is None:
          raise NotFoundError(f"Startup with ID {startup_id} not found")

     startups = Startup.__table__
     ledger_sum = (
          select(func.coalesce(func.sum(Investment.amount), 0))
          .where(
               Investment.startup_id == startups.c.id,
               Investment.payment_status == PaymentStatus.COMPLETED,
          )
          .scalar_subquery()
     )
     db.execute(update(startups).where(startups.c.id == startup_id).values(funding_received=ledger_sum))
     db.commit()
     db.expire_all()

     current = db.execute(
          select(Startup.funding_received).where(Startup.id == startup_id)
     ).scalar_one()
     result = ReconcileResult(
          startup_id=startup_id,
          previous=Decimal(str(previous)).quantize(CENT),
          current=Decimal(str(current)).quantize(CENT),
     )
     if result.drift:
          logger.warning("Reconciled startup_id=%s funding %s -> %s", startup_id, result.previous, result.current)
     return result


def reconcile_all(db: Session) -> List[ReconcileResult]:
     """Reconcile every startup; returns only the ones that drifted."""
     startup_ids = db.execute(select(Startup.id).order_by(Startup.id)).scalars().all()
     drifted = []
     for startup_id in startup_ids:
          result = reconcile_startup_funding(db, startup_id)
          if result.drift:
               drifted.append(result)
     return drifted
