# models/investment.py
"""
Investment model - one row per confirmed checkout session.

session_handle carries a unique constraint: it is what lets the webhook and
the redirect poll race each other safely. Rows are never updated by the
application once written.
"""
import enum
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from .base import Base, CreatedAtMixin


class PaymentStatus(str, enum.Enum):
     """Payment status of an investment."""
     PENDING = "pending"
     COMPLETED = "completed"
     FAILED = "failed"
     REFUNDED = "refunded"


class ConfirmationSource(str, enum.Enum):
     """Which confirmation path observed the payment first."""
     WEBHOOK = "webhook"
     POLL = "poll"


class Investment(CreatedAtMixin, Base):
     """
     Immutable investment ledger entry. Created when a checkout session is
     first observed as completed.
     """
     __tablename__ = "investments"
     __table_args__ = (
          CheckConstraint("amount > 0", name="ck_investments_amount_positive"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     session_handle = Column(
          String(255),
          nullable=False,
          unique=True,  # One ledger entry per checkout session
          index=True
     )
     investor_id = Column(Integer, nullable=True, index=True)  # anonymous checkouts are allowed
     startup_id = Column(
          Integer,
          ForeignKey("startups.id", ondelete="RESTRICT"),  # Prevent delete if money was recorded
          nullable=False,
          index=True
     )
     amount = Column(Numeric(12, 2), nullable=False)
     currency = Column(String(3), nullable=False, default="usd")
     payment_status = Column(
          Enum(PaymentStatus, name="payment_status", create_constraint=True, values_callable=lambda e: [m.value for m in e]),
          default=PaymentStatus.COMPLETED,
          nullable=False,
          index=True
     )
     source = Column(
          Enum(ConfirmationSource, name="confirmation_source", create_constraint=True, values_callable=lambda e: [m.value for m in e]),
          nullable=False,
     )

     # Relationships
     startup = relationship("Startup", back_populates="investments")

     def __repr__(self):
          return f"<Investment(id={self.id}, session='{self.session_handle}', amount={self.amount}, status='{self.payment_status.value}')>"
