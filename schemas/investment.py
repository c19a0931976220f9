# schemas/investment.py
"""
Pydantic schemas for portfolio, funding and ledger views.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class StartupHolding(BaseModel):
     startup_id: int
     startup_name: str
     investment_count: int
     total_invested: Decimal
     last_invested_at: Optional[datetime] = None


class PortfolioResponse(BaseModel):
     """Investments grouped by startup; empty portfolios return count 0."""
     count: int = 0
     total_invested: Decimal = Decimal("0")
     data: List[StartupHolding] = []

     model_config = ConfigDict(
          json_schema_extra={
               "example": {"count": 0, "total_invested": 0, "data": []}
          }
     )


class StartupFundingResponse(BaseModel):
     startup_id: int
     startup_name: str
     funding_required: Decimal
     funding_received: Decimal
     ledger_total: Decimal
     investment_count: int
     in_sync: bool


class LedgerEntryResponse(BaseModel):
     id: int
     session_handle: str
     investor_id: Optional[int] = None
     startup_id: int
     startup_name: str
     amount: Decimal
     currency: str
     payment_status: str
     source: str
     created_at: Optional[datetime] = None


class LedgerListResponse(BaseModel):
     """Paginated admin ledger; count and total_amount span every page."""
     count: int
     total_amount: Decimal
     page: int = 1
     page_size: int = 50
     data: List[LedgerEntryResponse]


class ReconcileResponse(BaseModel):
     startup_id: int
     previous: Decimal
     current: Decimal
     drift: Decimal
