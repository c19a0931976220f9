# routers/__init__.py
from .payments import router as payments_router
from .investments import router as investments_router
from .admin import router as admin_router

__all__ = ["payments_router", "investments_router", "admin_router"]
