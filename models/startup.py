# models/startup.py
import enum
from sqlalchemy import Column, Integer, String, Text, Numeric, Enum
from sqlalchemy.orm import relationship
from .base import Base, CreatedAtMixin


class StartupStage(str, enum.Enum):
     """Enumeration for startup maturity stage."""
     IDEA = "idea"
     MVP = "mvp"
     EARLY = "early"
     GROWTH = "growth"


class Startup(CreatedAtMixin, Base):
     """
     Startup model - listings created by entrepreneurs and funded by investors.

     funding_received is a derived counter: it is only ever changed by the
     ledger writer with a SQL-level delta, never assigned from application code.
     """
     __tablename__ = "startups"

     id = Column(Integer, primary_key=True, autoincrement=True)
     startup_name = Column(String(255), nullable=False)
     description = Column(Text, nullable=False, default="")
     industry = Column(String(100), nullable=False, default="")
     stage = Column(
          Enum(StartupStage, name="startup_stage", create_constraint=True, values_callable=lambda e: [m.value for m in e]),
          default=StartupStage.IDEA,
          nullable=False,
     )
     entrepreneur_id = Column(Integer, nullable=True, index=True)  # users live in the auth service

     # Funding
     funding_required = Column(Numeric(12, 2), nullable=False, default=0)
     funding_received = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")


     # Relationships
     investments = relationship("Investment", back_populates="startup")

     def __repr__(self):
          return f"<Startup(id={self.id}, name='{self.startup_name}', funding_received={self.funding_received})>"
