# services/reporting_service.py
"""
Reporting Service - read-only rollups over the investment ledger.

Totals are always summed live from completed investments; the startup's
funding_received counter is only shown next to the ledger sum, never used
as a source for investor-facing numbers.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Investment, Startup, PaymentStatus
from services.exceptions import NotFoundError
from services.ledger_service import CENT


def _money(value) -> Decimal:
     return Decimal(str(value or 0)).quantize(CENT)


def _completed():
     return Investment.payment_status == PaymentStatus.COMPLETED


def _group_by_startup(db: Session, *criteria) -> list:
     rows = (
          db.query(
               Investment.startup_id,
               Startup.startup_name,
               func.count(Investment.id),
               func.coalesce(func.sum(Investment.amount), 0),
               func.max(Investment.created_at),
          )
          .join(Startup, Investment.startup_id == Startup.id)
          .filter(_completed(), *criteria)
          .group_by(Investment.startup_id, Startup.startup_name)
          .order_by(Investment.startup_id)
          .all()
     )
     return [
          {
               "startup_id": startup_id,
               "startup_name": name,
               "investment_count": count,
               "total_invested": _money(total),
               "last_invested_at": last,
          }
          for startup_id, name, count, total, last in rows
     ]


def investor_portfolio(db: Session, investor_id: int) -> dict:
     """
     Portfolio for one investor grouped by startup.

     Returns {"count": 0, "total_invested": 0, "data": []} when the investor
     has no completed investments.
     """
     groups = _group_by_startup(db, Investment.investor_id == investor_id)
     return {
          "count": sum(g["investment_count"] for g in groups),
          "total_invested": sum((g["total_invested"] for g in groups), Decimal("0.00")),
          "data": groups,
     }


def entrepreneur_received(db: Session, entrepreneur_id: int) -> dict:
     """Investments received by the startups an entrepreneur owns."""
     groups = _group_by_startup(db, Startup.entrepreneur_id == entrepreneur_id)
     return {
          "count": sum(g["investment_count"] for g in groups),
          "total_invested": sum((g["total_invested"] for g in groups), Decimal("0.00")),
          "data": groups,
     }


def startup_funding(db: Session, startup_id: int) -> dict:
     """Ledger sum for a startup alongside its cached counter."""
     startup = db.query(Startup).filter(Startup.id == startup_id).first()
     if not startup:
          raise NotFoundError(f"Startup with ID {startup_id} not found")

     count, total = (
          db.query(func.count(Investment.id), func.coalesce(func.sum(Investment.amount), 0))
          .filter(Investment.startup_id == startup_id, _completed())
          .one()
     )
     ledger_sum = _money(total)
     counter = _money(startup.funding_received)
     return {
          "startup_id": startup.id,
          "startup_name": startup.startup_name,
          "funding_required": _money(startup.funding_required),
          "funding_received": counter,
          "ledger_total": ledger_sum,
          "investment_count": count,
          "in_sync": counter == ledger_sum,
     }


def admin_ledger(
     db: Session,
     status: Optional[PaymentStatus] = None,
     startup_id: Optional[int] = None,
     investor_id: Optional[int] = None,
     page: int = 1,
     page_size: int = 50,
) -> dict:
     """
     Paginated ledger for administrators, newest first.

     count and total_amount cover the whole filtered set, not just the page.
     Defaults to completed investments.
     """
     criteria = [Investment.payment_status == (status or PaymentStatus.COMPLETED)]
     if startup_id is not None:
          criteria.append(Investment.startup_id == startup_id)
     if investor_id is not None:
          criteria.append(Investment.investor_id == investor_id)

     count, total = (
          db.query(func.count(Investment.id), func.coalesce(func.sum(Investment.amount), 0))
          .filter(*criteria)
          .one()
     )
     rows = (
          db.query(Investment, Startup.startup_name)
          .join(Startup, Investment.startup_id == Startup.id)
          .filter(*criteria)
          .order_by(Investment.created_at.desc(), Investment.id.desc())
          .offset((page - 1) * page_size)
          .limit(page_size)
          .all()
     )
     return {
          "count": count,
          "total_amount": _money(total),
          "page": page,
          "page_size": page_size,
          "data": [
               {
                    "id": inv.id,
                    "session_handle": inv.session_handle,
                    "investor_id": inv.investor_id,
                    "startup_id": inv.startup_id,
                    "startup_name": name,
                    "amount": _money(inv.amount),
                    "currency": inv.currency,
                    "payment_status": inv.payment_status.value,
                    "source": inv.source.value,
                    "created_at": inv.created_at,
               }
               for inv, name in rows
          ],
     }


def get_investment(db: Session, investment_id: int) -> Investment:
     investment = db.query(Investment).filter(Investment.id == investment_id).first()
     if not investment:
          raise NotFoundError(f"Investment with ID {investment_id} not found")
     return investment
