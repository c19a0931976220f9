# routers/investments.py
"""
Investment views for investors, entrepreneurs and startup pages.

Read-only: every number here is summed from completed ledger rows.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_session
from schemas.investment import PortfolioResponse, StartupFundingResponse
from schemas.payment import InvestmentResponse
from services.exceptions import NotFoundError
from services.reporting_service import entrepreneur_received, get_investment, investor_portfolio, startup_funding
from utils.auth import verify_token

router = APIRouter(tags=["investments"])


def _is_admin(token: dict) -> bool:
     return token.get("role") == "admin"


@router.get("/api/investments/my", response_model=PortfolioResponse, summary="My portfolio")
def my_portfolio(db: Session = Depends(get_session), token: dict = Depends(verify_token)):
     return investor_portfolio(db, token["id"])


@router.get("/api/investments/received", response_model=PortfolioResponse, summary="Investments received")
def investments_received(db: Session = Depends(get_session), token: dict = Depends(verify_token)):
     """Investments received by the caller's startups, grouped per startup."""
     return entrepreneur_received(db, token["id"])


@router.get("/api/investments/portfolio/{investor_id}", response_model=PortfolioResponse, summary="Investor portfolio")
def portfolio(investor_id: int, db: Session = Depends(get_session), token: dict = Depends(verify_token)):
     if not _is_admin(token) and token["id"] != investor_id:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
     return investor_portfolio(db, investor_id)


@router.get("/api/investments/{investment_id}", response_model=InvestmentResponse, summary="Get investment")
def read_investment(investment_id: int, db: Session = Depends(get_session), token: dict = Depends(verify_token)):
     try:
          investment = get_investment(db, investment_id)
     except NotFoundError as e:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
     if not _is_admin(token) and investment.investor_id != token["id"]:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
     return InvestmentResponse.model_validate(investment)


@router.get("/api/startups/{startup_id}/funding", response_model=StartupFundingResponse, summary="Startup funding")
def read_startup_funding(startup_id: int, db: Session = Depends(get_session)):
     try:
          return startup_funding(db, startup_id)
     except NotFoundError as e:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
