# schemas/__init__.py
from .payment import (
     CheckoutSessionRequest,
     CheckoutSessionResponse,
     InvestmentResponse,
     VerifyResponse,
)
from .investment import (
     StartupHolding,
     PortfolioResponse,
     StartupFundingResponse,
     LedgerEntryResponse,
     LedgerListResponse,
     ReconcileResponse,
)

__all__ = [
     "CheckoutSessionRequest",
     "CheckoutSessionResponse",
     "InvestmentResponse",
     "VerifyResponse",
     "StartupHolding",
     "PortfolioResponse",
     "StartupFundingResponse",
     "LedgerEntryResponse",
     "LedgerListResponse",
     "ReconcileResponse",
]
