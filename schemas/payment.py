# schemas/payment.py
"""
Pydantic schemas for the checkout and confirmation API.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from models import ConfirmationSource, PaymentStatus


class CheckoutSessionRequest(BaseModel):
     """Request body for POST /api/payments/create-session.

     Amount, startup and currency are checked by the checkout service so the
     client gets the same specific messages the service raises.
     """

     amount: Optional[Decimal] = Field(None, description="Pledged amount (must be positive)")
     startup_id: Optional[int] = Field(None, description="Startup to invest in (must exist)")
     currency: Optional[str] = Field(None, max_length=3, description="ISO currency code, e.g. usd")
     investor_id: Optional[int] = Field(None, description="Investor; taken from the bearer token when present")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "amount": 500.00,
                    "startup_id": 1,
                    "currency": "usd",
               }
          }
     )


class CheckoutSessionResponse(BaseModel):
     """Response for POST /api/payments/create-session."""

     session_id: str = Field(..., description="Processor checkout session id")
     redirect_url: Optional[str] = Field(None, description="Hosted checkout page")
     metadata: dict = Field(default_factory=dict, description="Correlation metadata echoed back")


class InvestmentResponse(BaseModel):
     id: int
     session_handle: str
     investor_id: Optional[int] = None
     startup_id: int
     amount: Decimal
     currency: str
     payment_status: PaymentStatus
     source: ConfirmationSource
     created_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True)


class VerifyResponse(BaseModel):
     """Response for GET /api/payments/verify and POST /api/payments/webhook."""

     session_id: str
     payment_status: PaymentStatus
     outcome: str = Field(..., description="created | duplicate | skipped")
     investment: Optional[InvestmentResponse] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "session_id": "cs_test_a1b2c3",
                    "payment_status": "completed",
                    "outcome": "created",
                    "investment": None,
               }
          }
     )
