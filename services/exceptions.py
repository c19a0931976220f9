# services/exceptions.py
"""
Error taxonomy for the funding ledger.

Routers map these to HTTP responses; only ValidationError carries a message
meant for the client, everything else is reported generically.
"""
from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
     """Base class for funding ledger errors."""


class ValidationError(LedgerError, ValueError):
     """Bad amount, missing/unknown startup, malformed correlation metadata."""


class NotFoundError(LedgerError, LookupError):
     """Requested startup, investment or checkout session does not exist."""


class SignatureError(LedgerError):
     """Webhook payload failed processor signature verification."""


class UpstreamUnavailable(LedgerError):
     """Payment processor could not be reached; the caller may retry."""


class PartialCommitInconsistency(LedgerError):
     """
     The investment row was written but the startup counter increment did not land.
     Carries the correlation data needed to reconcile the startup.
     """

     def __init__(self, session_handle: str, startup_id: int, amount: Decimal, reason: Optional[str] = None):
          self.session_handle = session_handle
          self.startup_id = startup_id
          self.amount = amount
          self.reason = reason
          super().__init__(
               f"Funding counter not incremented for startup_id={startup_id} "
               f"(session={session_handle}, amount={amount}): {reason or 'unknown'}"
          )
