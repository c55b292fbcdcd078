from datetime import datetime

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from caixa.models.company import Base


PENDING = "pendente"
PARTIAL = "parcial"
PAID = "pago"
COMPLETED = "completed"

SETTLED_STATUSES = {PAID, COMPLETED}

INCOME_TYPES = ("venda", "venda_prazo", "receita", "income")
EXPENSE_TYPES = ("compra", "compra_prazo", "despesa", "expense")


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("installment_group", "installment_number", name="uq_transactions_group_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, index=True)
    description = Column(String(500), nullable=True)

    # Signed amount; due date in `date`, settlement date in `payment_date`
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=False, index=True)
    payment_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=PENDING, index=True)
    paid_amount = Column(Numeric(12, 2), nullable=True)
    interest = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(30), nullable=True)
    has_card_fee = Column(Boolean, nullable=False, default=False)
    card_fee = Column(Numeric(12, 2), nullable=False, default=0)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)

    installment_group = Column(String(100), nullable=True, index=True)
    installment_number = Column(Integer, nullable=True)
    installment_total = Column(Integer, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    payment_history = relationship(
        "PaymentHistory",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="PaymentHistory.id",
    )

    __mapper_args__ = {"version_id_col": version}
