import logging
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from splitbook.core.errors import SettlementWriteError, StoreError
from splitbook.models.expense import Expense
from splitbook.models.expense_split import ExpenseSplit
from splitbook.models.group import Group  # noqa: F401  mapped target of GroupMember.group
from splitbook.models.group_member import GroupMember
from splitbook.models.settlement import Settlement
from splitbook.models.user import User
from splitbook.schemas.ledger import (
    ExpenseRecord,
    LedgerIssue,
    Member,
    SettlementRecord,
    SplitRecord,
)
from splitbook.store.base import LedgerStore, parse_records

logger = logging.getLogger(__name__)


class SqlLedgerStore(LedgerStore):
    """
    Reads the ledger tables straight from Postgres.

    Every call opens its own session, so the member/expense/split/settlement
    reads of one recomputation are not a single snapshot.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _rows(self, q):
        try:
            async with self.session_factory() as db:
                res = await db.execute(q)
                return [dict(row) for row in res.mappings().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Ledger query failed: {e}") from e

    async def fetch_members(self, group_id: str) -> tuple[list[Member], list[LedgerIssue]]:
        q = (
            select(
                User.id.label("id"),
                User.name.label("display_name"),
            )
            .join(GroupMember, GroupMember.user_id == User.id)
            .where(GroupMember.group_id == group_id)
            .order_by(GroupMember.joined_at, GroupMember.id)
        )
        return parse_records(Member, await self._rows(q), "member")

    async def fetch_expenses(self, group_id: str) -> tuple[list[ExpenseRecord], list[LedgerIssue]]:
        q = (
            select(
                Expense.id.label("id"),
                Expense.paid_by.label("paid_by_member_id"),
                Expense.amount.label("amount"),
            )
            .where(Expense.group_id == group_id)
            .order_by(Expense.created_at, Expense.id)
        )
        return parse_records(ExpenseRecord, await self._rows(q), "expense")

    async def fetch_splits(
        self, expense_ids: Sequence[str]
    ) -> tuple[list[SplitRecord], list[LedgerIssue]]:
        if not expense_ids:
            return [], []

        q = (
            select(
                ExpenseSplit.expense_id.label("expense_id"),
                ExpenseSplit.user_id.label("member_id"),
                ExpenseSplit.amount.label("amount"),
            )
            .where(ExpenseSplit.expense_id.in_(list(expense_ids)))
            .order_by(ExpenseSplit.expense_id, ExpenseSplit.id)
        )
        return parse_records(SplitRecord, await self._rows(q), "split", id_field="expense_id")

    async def fetch_settlements(
        self, group_id: str
    ) -> tuple[list[SettlementRecord], list[LedgerIssue]]:
        q = (
            select(
                Settlement.id.label("id"),
                Settlement.group_id.label("group_id"),
                Settlement.from_user_id.label("from_member_id"),
                Settlement.to_user_id.label("to_member_id"),
                Settlement.amount.label("amount"),
                Settlement.created_at.label("created_at"),
            )
            .where(Settlement.group_id == group_id)
            .order_by(Settlement.created_at.desc(), Settlement.id)
        )
        return parse_records(SettlementRecord, await self._rows(q), "settlement")

    async def insert_settlement(
        self,
        group_id: str,
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
    ) -> SettlementRecord:
        settlement = Settlement(
            group_id=group_id,
            from_user_id=from_member_id,
            to_user_id=to_member_id,
            amount=amount,
        )

        try:
            async with self.session_factory() as db:
                db.add(settlement)
                await db.commit()
                await db.refresh(settlement)
        except SQLAlchemyError as e:
            logger.error("Settlement insert failed for group %s: %s", group_id, e)
            raise SettlementWriteError(f"Could not record settlement: {e}") from e

        return SettlementRecord(
            id=settlement.id,
            group_id=settlement.group_id,
            from_member_id=settlement.from_user_id,
            to_member_id=settlement.to_user_id,
            amount=settlement.amount,
            created_at=settlement.created_at,
        )

    async def ping(self) -> bool:
        try:
            async with self.session_factory() as db:
                await db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Store ping failed: %s", e)
            return False

