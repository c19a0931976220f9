# models/__init__.py
from .base import Base
from .startup import Startup, StartupStage
from .investment import Investment, PaymentStatus, ConfirmationSource

__all__ = [
     "Base",
     "Startup",
     "StartupStage",
     "Investment",
     "PaymentStatus",
     "ConfirmationSource",
]
