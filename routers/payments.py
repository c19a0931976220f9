# routers/payments.py
"""
Payment API.

POST /api/payments/create-session: open a Stripe checkout session for a pledge.
POST /api/payments/webhook: Stripe event delivery (raw signed body).
GET  /api/payments/verify: client poll after redirect-back from checkout.

The webhook and the poll both end in the same idempotent ledger writer, so
whichever arrives first records the investment and the other is a no-op.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from database import get_session
from schemas.payment import CheckoutSessionRequest, CheckoutSessionResponse, InvestmentResponse, VerifyResponse
from services.checkout_service import create_checkout_session
from services.confirmation_service import ConfirmationResult, handle_webhook, verify_session
from services.exceptions import (
     NotFoundError,
     PartialCommitInconsistency,
     SignatureError,
     UpstreamUnavailable,
     ValidationError,
)
from services.payment_gateway import StripeGateway, get_gateway
from utils.auth import optional_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

VERIFY_FAILED = "Payment verification failed, try again"


def _to_response(result: ConfirmationResult) -> VerifyResponse:
     return VerifyResponse(
          session_id=result.session_id,
          payment_status=result.payment_status,
          outcome=result.outcome.value,
          investment=InvestmentResponse.model_validate(result.investment) if result.investment else None,
     )


@router.post(
     "/create-session",
     response_model=CheckoutSessionResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create checkout session",
)
def create_session(
     body: CheckoutSessionRequest,
     db: Session = Depends(get_session),
     gateway: StripeGateway = Depends(get_gateway),
     token: Optional[dict] = Depends(optional_token),
):
     """
     Open a hosted checkout session for an investment pledge.

     The investor is taken from the bearer token when one is sent, otherwise
     from the body; anonymous pledges are allowed.
     """
     investor_id = token["id"] if token else body.investor_id
     try:
          session = create_checkout_session(
               db,
               gateway,
               amount=body.amount,
               startup_id=body.startup_id,
               currency=body.currency,
               investor_id=investor_id,
          )
     except ValidationError as e:
          raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
     except UpstreamUnavailable:
          raise HTTPException(
               status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
               detail="Could not start checkout, try again",
          )

     return CheckoutSessionResponse(
          session_id=session.session_id,
          redirect_url=session.redirect_url,
          metadata=session.metadata,
     )


@router.post("/webhook", summary="Stripe webhook")
async def payment_webhook(request: Request, db: Session = Depends(get_session), gateway: StripeGateway = Depends(get_gateway)):
     """
     Receives Stripe events. Signature is checked against the raw body.

     Non-2xx responses make Stripe redeliver, so failures are reported honestly;
     redelivery of an already-recorded session is a no-op.
     """
     payload = await request.body()
     signature = request.headers.get("Stripe-Signature")
     try:
          result = await run_in_threadpool(handle_webhook, db, gateway, payload, signature)
     except SignatureError:
          raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")
     except ValidationError as e:
          raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
     except PartialCommitInconsistency as e:
          logger.error("Webhook partial commit session=%s startup_id=%s", e.session_handle, e.startup_id)
          raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Ledger update failed")

     if result is None:
          return {"received": True, "outcome": "ignored"}
     return {"received": True, **_to_response(result).model_dump(mode="json")}


@router.get("/verify", response_model=VerifyResponse, summary="Verify checkout session")
def verify_payment(
     session_id: str = Query(..., min_length=1, description="Checkout session id from the redirect"),
     db: Session = Depends(get_session),
     gateway: StripeGateway = Depends(get_gateway),
):
     """
     Poll the processor for a session's status and record it if paid.

     The status always comes from Stripe, never from the client.
     """
     try:
          result = verify_session(db, gateway, session_id)
     except ValidationError as e:
          raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
     except NotFoundError:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=VERIFY_FAILED)
     except UpstreamUnavailable:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=VERIFY_FAILED)
     except PartialCommitInconsistency:
          raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=VERIFY_FAILED)
     return _to_response(result)
