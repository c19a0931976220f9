# utils/auth.py
"""
Bearer token dependencies.

Tokens are issued by the auth service; here they are only decoded.
Claims used: id (user id) and role (admin, entrepreneur, investor).
"""
import os
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt
from dotenv import load_dotenv

load_dotenv()
SECRET_KEY = os.getenv("JWT_SECRET")
ALGORITHM = "HS256"


def _with_user_id(payload: dict) -> dict:
     """Normalize the id claim to a positive int; tokens without one are invalid."""
     user_id = payload.get("id")
     try:
          user_id = None if isinstance(user_id, bool) else int(str(user_id).strip())
     except ValueError:
          user_id = None
     if user_id is None or user_id <= 0:
          raise HTTPException(status_code=403, detail="Invalid token")
     return {**payload, "id": user_id}


def _decode(token: str) -> dict:
     if not SECRET_KEY:
          raise HTTPException(status_code=500, detail="Authentication is not configured")
     try:
          payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
     except JWTError:
          raise HTTPException(status_code=403, detail="Invalid token")
     return _with_user_id(payload)


# Token Auth Dependency
def verify_token(request: Request) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=401, detail="Missing token")
     return _decode(auth.split(" ", 1)[1])


def optional_token(request: Request) -> Optional[dict]:
     """Like verify_token but anonymous requests pass through as None."""
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          return None
     return _decode(auth.split(" ", 1)[1])


def require_admin(token: dict = Depends(verify_token)) -> dict:
     if token.get("role") != "admin":
          raise HTTPException(status_code=403, detail="Admin access required")
     return token
