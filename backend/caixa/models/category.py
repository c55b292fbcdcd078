from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint

from caixa.models.company import Base


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("company_id", "name", "type", name="uq_categories_company_name_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    type = Column(String(20), nullable=False)  # "income" or "expense"


DEFAULT_CATEGORIES = [
    {"name": "Vendas", "type": "income"},
    {"name": "Serviços", "type": "income"},
    {"name": "Outras Receitas", "type": "income"},
    {"name": "Fornecedores", "type": "expense"},
    {"name": "Aluguel", "type": "expense"},
    {"name": "Salários", "type": "expense"},
    {"name": "Impostos", "type": "expense"},
    {"name": "Outras Despesas", "type": "expense"},
]
