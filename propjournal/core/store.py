"""
Persistence store.

Read/write operations on accounts, trades and copy groups used by the
commit pipeline and the CLI. Every SQLAlchemy failure is surfaced as
StoreError so callers can decide per write how to recover.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from propjournal.core.config import Config
from propjournal.core.db import init_db, session_scope
from propjournal.core.models import Account, CopyGroup, CopyMember, Trade

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A read or write against the journal database failed."""


class CopyGroupError(ValueError):
    """Invalid copy group edit."""


ACCOUNT_COLUMNS = frozenset(c.name for c in Account.__table__.columns) - {"id"}
TRADE_COLUMNS = frozenset(c.name for c in Trade.__table__.columns) - {"id"}


class TradeStore:
    """
    SQLite backed journal store.

    Each call runs in its own session; returned rows are detached but
    fully loaded.
    """

    def __init__(self, config: Config):
        self.config = config
        init_db(config)

    @contextmanager
    def _session(self, action: str) -> Generator[Session, None, None]:
        try:
            with session_scope(self.config) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Store failure during {action}: {e}")
            raise StoreError(f"Could not {action}: {e}") from e

    # Accounts

    def add_account(self, **fields: Any) -> Account:
        unknown = set(fields) - ACCOUNT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)}")

        with self._session("create account") as session:
            account = Account(**fields)
            session.add(account)
            session.flush()
            logger.info(f"Created account: {account}")
            return account

    def get_account(self, account_id: int) -> Optional[Account]:
        with self._session(f"load account {account_id}") as session:
            return session.get(Account, account_id)

    def list_accounts(self) -> List[Account]:
        with self._session("list accounts") as session:
            return list(session.scalars(select(Account).order_by(Account.id)))

    def update_account(self, account_id: int, **changes: Any) -> Account:
        """
        Apply a partial update to an account.

        Raises StoreError if the account does not exist.
        """
        unknown = set(changes) - ACCOUNT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)}")

        with self._session(f"update account {account_id}") as session:
            account = session.get(Account, account_id)
            if account is None:
                raise StoreError(f"Account {account_id} not found")

            for key, value in changes.items():
                setattr(account, key, value)

            session.flush()
            logger.info(f"Updated account {account_id}: {sorted(changes)}")
            return account

    # Trades

    def create_trade(self, trade: Trade) -> Trade:
        """Insert a new trade and return it with its id."""
        if trade.id is not None:
            raise ValueError("create_trade requires a trade without id")

        with self._session(f"record trade for account {trade.account_id}") as session:
            session.add(trade)
            session.flush()
            logger.info(f"Recorded trade: {trade}")
            return trade

    def update_trade(self, trade_id: int, **changes: Any) -> Trade:
        unknown = set(changes) - TRADE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown trade fields: {sorted(unknown)}")

        with self._session(f"update trade {trade_id}") as session:
            trade = session.get(Trade, trade_id)
            if trade is None:
                raise StoreError(f"Trade {trade_id} not found")

            for key, value in changes.items():
                setattr(trade, key, value)

            session.flush()
            logger.info(f"Updated trade {trade_id}: {sorted(changes)}")
            return trade

    def get_trade(self, trade_id: int) -> Optional[Trade]:
        with self._session(f"load trade {trade_id}") as session:
            return session.get(Trade, trade_id)

    def get_trades_for_account(
        self,
        account_id: int,
        since: Optional[datetime] = None,
    ) -> List[Trade]:
        """
        Get an account's trades, oldest first.

        With since, only trades recorded at or after that moment are
        returned. Trades without a recording timestamp fall back to
        their calendar day.
        """
        with self._session(f"load trades for account {account_id}") as session:
            query = select(Trade).where(Trade.account_id == account_id)

            if since is not None:
                query = query.where(
                    or_(
                        Trade.created_at >= since,
                        and_(Trade.created_at.is_(None), Trade.date >= since.date()),
                    )
                )

            query = query.order_by(Trade.date, Trade.created_at, Trade.id)
            return list(session.scalars(query))

    # Copy groups

    def add_copy_group(self, name: str, leader_account_id: int, is_active: bool = True) -> CopyGroup:
        with self._session("create copy group") as session:
            if session.get(Account, leader_account_id) is None:
                raise CopyGroupError(f"Leader account {leader_account_id} not found")

            group = CopyGroup(name=name, leader_account_id=leader_account_id, is_active=is_active)
            session.add(group)
            session.flush()
            logger.info(f"Created copy group: {group}")
            return group

    def add_copy_member(
        self,
        group_id: int,
        follower_account_id: int,
        risk_multiplier: float = 1.0,
    ) -> CopyMember:
        """
        Link a follower account to a copy group.

        The leader can never follow itself and a follower joins a
        group at most once.
        """
        if risk_multiplier < 0:
            raise CopyGroupError("Risk multiplier must not be negative")

        with self._session(f"add member to copy group {group_id}") as session:
            group = session.get(CopyGroup, group_id)
            if group is None:
                raise CopyGroupError(f"Copy group {group_id} not found")

            if group.leader_account_id == follower_account_id:
                raise CopyGroupError("The leader account cannot follow itself")

            if session.get(Account, follower_account_id) is None:
                raise CopyGroupError(f"Follower account {follower_account_id} not found")

            if any(m.follower_account_id == follower_account_id for m in group.members):
                raise CopyGroupError(
                    f"Account {follower_account_id} already follows group {group_id}"
                )

            member = CopyMember(
                group_id=group_id,
                follower_account_id=follower_account_id,
                risk_multiplier=risk_multiplier,
            )
            session.add(member)
            session.flush()
            logger.info(f"Added copy member: {member}")
            return member

    def set_copy_group_active(self, group_id: int, is_active: bool) -> CopyGroup:
        with self._session(f"toggle copy group {group_id}") as session:
            group = session.get(CopyGroup, group_id)
            if group is None:
                raise CopyGroupError(f"Copy group {group_id} not found")

            group.is_active = is_active
            session.flush()
            return group

    def list_copy_groups(self) -> List[CopyGroup]:
        with self._session("list copy groups") as session:
            return list(session.scalars(select(CopyGroup).order_by(CopyGroup.id)))

    def list_active_copy_groups(self, leader_account_id: int) -> List[CopyGroup]:
        """Active groups led by an account, in creation order."""
        with self._session(f"load copy groups for leader {leader_account_id}") as session:
            query = (
                select(CopyGroup)
                .where(
                    CopyGroup.leader_account_id == leader_account_id,
                    CopyGroup.is_active.is_(True),
                )
                .order_by(CopyGroup.id)
            )
            return list(session.scalars(query))
