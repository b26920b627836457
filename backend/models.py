from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Index, UniqueConstraint, text

from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    full_name = Column(String)
    upi_id = Column(String, nullable=True)  # name@handle, case preserved
    phone_number = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    description = Column(String, nullable=True)
    created_by_id = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_member"),)

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True)
    user_id = Column(Integer, index=True)
    role = Column(String, default="member")  # 'admin' or 'member'
    joined_at = Column(DateTime, default=datetime.utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String)
    amount = Column(Integer)  # Stored in paise
    category = Column(String, index=True)
    date = Column(String, index=True)  # YYYY-MM-DD
    payment_method = Column(String, default="Cash")
    notes = Column(String, nullable=True)
    payer_id = Column(Integer, index=True)
    group_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, index=True)
    user_id = Column(Integer, index=True)
    amount_owed = Column(Integer)  # The portion this user owes, in paise
    paid = Column(Boolean, default=False)


class Income(Base):
    __tablename__ = "incomes"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Integer)
    source = Column(String)
    description = Column(String)
    date = Column(String)
    user_id = Column(Integer, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Budget(Base):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("user_id", "category", "month", "year", name="uq_budget_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True)
    category = Column(String)
    limit = Column(Integer)  # paise
    month = Column(Integer)
    year = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)


class Settlement(Base):
    __tablename__ = "settlements"
    __table_args__ = (
        # At most one pending settlement per debtor/creditor pair in a group
        Index(
            "ix_settlements_one_pending",
            "group_id", "from_user_id", "to_user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True)
    from_user_id = Column(Integer)  # debtor
    to_user_id = Column(Integer)  # creditor
    amount = Column(Integer)
    status = Column(String, default="pending")  # pending, paid, cancelled
    payment_method = Column(String, nullable=True)
    transaction_id = Column(String, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer)
    type = Column(String)
    title = Column(String)
    message = Column(String)
    category = Column(String, nullable=True)
    budget_limit = Column(Integer, nullable=True)
    current_spent = Column(Integer, nullable=True)
    percentage = Column(Float, nullable=True)
    group_id = Column(Integer, nullable=True)
    settlement_id = Column(Integer, nullable=True)
    amount = Column(Integer, nullable=True)
    from_user_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
