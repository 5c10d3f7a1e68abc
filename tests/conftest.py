import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STORE_BACKEND", "sql")

from decimal import Decimal

import pytest

from splitbook.core.errors import SettlementWriteError
from splitbook.schemas.ledger import (
    ExpenseRecord,
    Member,
    SettlementRecord,
    SplitRecord,
)
from splitbook.services.refresh import RefreshHub
from splitbook.store.base import LedgerStore, parse_records


class FakeStore(LedgerStore):
    """In-memory store holding raw rows, like the hosted tables would."""

    def __init__(self):
        self.members = {}
        self.expenses = {}
        self.splits = []
        self.settlements = {}
        self.fail_insert = False

    def add_member(self, group_id, member_id, name):
        self.members.setdefault(group_id, []).append({"id": member_id, "display_name": name})

    def add_expense(self, group_id, expense_id, paid_by, amount, shares):
        self.expenses.setdefault(group_id, []).append(
            {"id": expense_id, "paid_by_member_id": paid_by, "amount": amount}
        )
        for member_id, share in shares.items():
            self.splits.append({"expense_id": expense_id, "member_id": member_id, "amount": share})

    def add_settlement(self, group_id, from_id, to_id, amount):
        rows = self.settlements.setdefault(group_id, [])
        rows.append({
            "id": f"s{len(rows) + 1}",
            "group_id": group_id,
            "from_member_id": from_id,
            "to_member_id": to_id,
            "amount": amount,
        })
        return rows[-1]

    async def fetch_members(self, group_id):
        return parse_records(Member, self.members.get(group_id, []), "member")

    async def fetch_expenses(self, group_id):
        return parse_records(ExpenseRecord, self.expenses.get(group_id, []), "expense")

    async def fetch_splits(self, expense_ids):
        rows = [s for s in self.splits if s["expense_id"] in set(expense_ids)]
        return parse_records(SplitRecord, rows, "split", id_field="expense_id")

    async def fetch_settlements(self, group_id):
        rows = list(reversed(self.settlements.get(group_id, [])))
        return parse_records(SettlementRecord, rows, "settlement")

    async def insert_settlement(self, group_id, from_member_id, to_member_id, amount):
        if self.fail_insert:
            raise SettlementWriteError("insert rejected")
        row = self.add_settlement(group_id, from_member_id, to_member_id, amount)
        return SettlementRecord.model_validate(row)

    async def ping(self):
        return True


@pytest.fixture
def store():
    """Group g1 with A, B, C where A paid 90 split equally."""
    s = FakeStore()
    s.add_member("g1", "a", "Alice")
    s.add_member("g1", "b", "Bob")
    s.add_member("g1", "c", "Carol")
    s.add_expense("g1", "e1", "a", Decimal("90"), {
        "a": Decimal("30"),
        "b": Decimal("30"),
        "c": Decimal("30"),
    })
    return s


@pytest.fixture
def hub():
    return RefreshHub()


@pytest.fixture
def events(hub):
    received = []

    async def listener(event):
        received.append(event)

    hub.subscribe(listener)
    return received
