# routers/admin.py
"""
Admin ledger and reconciliation endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from database import get_session
from models import PaymentStatus
from schemas.investment import LedgerListResponse, ReconcileResponse
from services.exceptions import NotFoundError
from services.ledger_service import ReconcileResult, reconcile_all, reconcile_startup_funding
from services.reporting_service import admin_ledger
from utils.auth import require_admin

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _reconcile_response(result: ReconcileResult) -> ReconcileResponse:
     return ReconcileResponse(
          startup_id=result.startup_id,
          previous=result.previous,
          current=result.current,
          drift=result.drift,
     )


@router.get("/ledger", response_model=LedgerListResponse, summary="Investment ledger")
def read_ledger(
     payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
     startup_id: Optional[int] = Query(None, gt=0),
     investor_id: Optional[int] = Query(None, gt=0),
     page: int = Query(1, ge=1),
     page_size: int = Query(50, ge=1, le=200),
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     return admin_ledger(
          db,
          status=payment_status,
          startup_id=startup_id,
          investor_id=investor_id,
          page=page,
          page_size=page_size,
     )


@router.post("/startups/{startup_id}/reconcile", response_model=ReconcileResponse, summary="Reconcile startup funding")
def reconcile_startup(startup_id: int, db: Session = Depends(get_session), token: dict = Depends(require_admin)):
     """Recompute funding_received for one startup from its completed investments."""
     try:
          result = reconcile_startup_funding(db, startup_id)
     except NotFoundError as e:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
     return _reconcile_response(result)


@router.post("/reconcile", response_model=List[ReconcileResponse], summary="Reconcile all startups")
def reconcile_everything(db: Session = Depends(get_session), token: dict = Depends(require_admin)):
     """Reconcile every startup; only startups whose counter drifted are returned."""
     return [_reconcile_response(r) for r in reconcile_all(db)]
