from .company import Company
from .user import User
from .customer import Customer
from .supplier import Supplier
from .category import Category
from .transaction import Transaction
from .sale import Sale, Purchase
from .payment_history import PaymentHistory
from .subscription import Subscription, Plan
from .audit_log import AuditLog, LoginAttempt

__all__ = [
    "Company", "User", "Customer", "Supplier", "Category", "Transaction", "Sale", "Purchase",
    "PaymentHistory", "Subscription", "Plan", "AuditLog", "LoginAttempt",
]
