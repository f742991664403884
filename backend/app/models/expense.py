"""
Expense database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Enum, Numeric, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.database import Base


class ExpenseKind(str, enum.Enum):
    """Ledger entry polarity."""
    expense = "expense"
    income = "income"


class Expense(Base):
    """Expense or income record."""

    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(18, 2), nullable=False)  # Negative = expense, positive = income
    currency = Column(String(3), nullable=False)
    kind = Column(Enum(ExpenseKind), nullable=False)
    type = Column(String(32), nullable=False, default="")
    resource = Column(String(32), nullable=False, default="")
    description = Column(Text, nullable=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True, index=True)

    # Relationships
    user = relationship("User", back_populates="expenses")

    # Indexes for common queries
    __table_args__ = (
        Index("idx_expense_user_date", "user_id", "date"),
        Index("idx_expense_user_kind", "user_id", "kind"),
    )
