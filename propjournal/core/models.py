"""
Database models for PropJournal.

Models: Account, Trade, CopyGroup, CopyMember.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from propjournal.core.utils import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class AccountType(str, Enum):
    """Kind of trading account."""
    LIVE = "Live"
    EVALUATION = "Evaluation"
    FUNDED = "Funded"
    DEMO = "Demo"
    BACKTESTING = "Backtesting"

    @property
    def is_rule_account(self) -> bool:
        """Evaluation and funded accounts carry a loss limit and a target."""
        return self in (AccountType.EVALUATION, AccountType.FUNDED)


def account_type_of(account) -> AccountType:
    """Account type as enum, also for rows built without a session."""
    if account.type is None:
        return AccountType.LIVE
    return AccountType(account.type)


class TradeSide(str, Enum):
    """Direction of a trade."""
    LONG = "LONG"
    SHORT = "SHORT"


class Account(Base):
    """
    A trading account.

    Stats are always derived from the trades recorded at or after
    reset_date, so a reset never deletes history.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[AccountType] = mapped_column(
        SQLEnum(AccountType), default=AccountType.LIVE, nullable=False
    )
    currency: Mapped[str] = mapped_column(String(10), default="USD")
    prop_firm: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Rules
    capital: Mapped[float] = mapped_column(Float, default=0.0)
    profit_target: Mapped[float] = mapped_column(Float, default=0.0)  # 0 = none
    max_loss: Mapped[float] = mapped_column(Float, default=0.0)  # 0 = none
    consistency_rule: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # Percent
    payout_goal: Mapped[float] = mapped_column(Float, default=0.0)  # 0 = none

    # Lifecycle
    reset_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    prev_reset_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_ranked_up: Mapped[bool] = mapped_column(Boolean, default=False)
    breach_report: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationship
    trades: Mapped[list["Trade"]] = relationship(
        "Trade", back_populates="account", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Account {self.id}: {self.name} ({self.type.value}) capital={self.capital}>"


class Trade(Base):
    """
    A single recorded trade.

    Follower copies are independent rows that point back to the
    leader trade through source_trade_id.
    """

    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False, index=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    symbol: Mapped[str] = mapped_column(String(50), nullable=False)
    side: Mapped[TradeSide] = mapped_column(SQLEnum(TradeSide), default=TradeSide.LONG)
    pnl: Mapped[float] = mapped_column(Float, nullable=False)
    risk_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sl_pips: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Descriptive metadata
    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bias: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    order_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    comment_execution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    source_trade_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("trades.id"), nullable=True
    )
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=utcnow, index=True)

    # Relationship
    account: Mapped["Account"] = relationship("Account", back_populates="trades")

    def __repr__(self) -> str:
        return f"<Trade {self.id}: account={self.account_id} {self.symbol} {self.date} pnl={self.pnl}>"


class CopyGroup(Base):
    """
    Copy trading group.

    Every trade recorded on the leader is mirrored to each member.
    """

    __tablename__ = "copy_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    leader_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationship
    members: Mapped[list["CopyMember"]] = relationship(
        "CopyMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="CopyMember.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<CopyGroup {self.id}: {self.name} leader={self.leader_account_id} active={self.is_active}>"


class CopyMember(Base):
    """Follower account of a copy group."""

    __tablename__ = "copy_members"
    __table_args__ = (UniqueConstraint("group_id", "follower_account_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("copy_groups.id"), nullable=False
    )
    follower_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False
    )
    risk_multiplier: Mapped[float] = mapped_column(Float, default=1.0)

    # Relationship
    group: Mapped["CopyGroup"] = relationship("CopyGroup", back_populates="members")

    def __repr__(self) -> str:
        return f"<CopyMember {self.id}: group={self.group_id} follower={self.follower_account_id} x{self.risk_multiplier}>"
