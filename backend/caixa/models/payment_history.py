from datetime import datetime
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from caixa.models.company import Base


class PaymentHistory(Base):
    __tablename__ = "payment_history"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)

    # Amount of this single payment (not the accumulated total)
    amount = Column(Numeric(12, 2), nullable=False)
    interest = Column(Numeric(12, 2), nullable=False, default=0)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(30), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    transaction = relationship("Transaction", back_populates="payment_history")
