# services/__init__.py
from .ledger_service import (
     LedgerOutcome,
     LedgerResult,
     ReconcileResult,
     record_payment,
     find_by_session_handle,
     insert_if_absent,
     increment_funding,
     ledger_total,
     reconcile_startup_funding,
     reconcile_all,
)
from .checkout_service import create_checkout_session
from .confirmation_service import ConfirmationResult, confirm_session, handle_webhook, verify_session
from .reporting_service import investor_portfolio, entrepreneur_received, startup_funding, admin_ledger, get_investment

__all__ = [
     "LedgerOutcome",
     "LedgerResult",
     "ReconcileResult",
     "record_payment",
     "find_by_session_handle",
     "insert_if_absent",
     "increment_funding",
     "ledger_total",
     "reconcile_startup_funding",
     "reconcile_all",
     "create_checkout_session",
     "ConfirmationResult",
     "confirm_session",
     "handle_webhook",
     "verify_session",
     "investor_portfolio",
     "entrepreneur_received",
     "startup_funding",
     "admin_ledger",
     "get_investment",
]
