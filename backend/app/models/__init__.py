"""
Database models package.
"""

from app.models.user import User, Role
from app.models.expense import Expense, ExpenseKind

__all__ = [
    "User",
    "Role",
    "Expense",
    "ExpenseKind",
]
