from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from caixa.models.company import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    plan = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, active, cancelled, expired
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_method = Column(String(30), nullable=True)  # boleto, pix, card
    gateway_payment_id = Column(String(64), nullable=True, index=True)
    ticket_url = Column(String(1000), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    company = relationship("Company")


class Plan(Base):
    __tablename__ = "plan_catalog"

    key = Column(String(50), primary_key=True)
    display_name = Column(String(120), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="BRL")
    interval = Column(String(20), nullable=False, default="month")  # "month" or "lifetime"
    is_active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
