from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class UserDB(Base):
    __tablename__ = "users"

    # Telegram User ID
    id = Column(Text, primary_key=True, index=True)

    # Savings goal used by the mentor; NULL means the configured default
    goal = Column(Numeric(14, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CategoryDB(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # 'income' or 'expense'
    user_id = Column(Text, nullable=True)  # None for system defaults

    # Soft delete flag
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    transactions = relationship("TransactionDB", back_populates="category")

    __table_args__ = (UniqueConstraint("name", "type", "user_id", name="uq_category_user"),)


class TransactionDB(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)

    date = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)

    note = Column(Text, nullable=True)
    vendor = Column(Text, nullable=True)

    category = relationship("CategoryDB", back_populates="transactions")


class MentorStateDB(Base):
    """Per-user key-value rows backing the mentor's local state."""

    __tablename__ = "mentor_state"

    id = Column(Integer, primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    key = Column(Text, nullable=False)
    value = Column(Text, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_mentor_state_user_key"),)
