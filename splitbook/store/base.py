import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from splitbook.schemas.ledger import (
    ExpenseRecord,
    LedgerIssue,
    Member,
    SettlementRecord,
    SplitRecord,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_records(
    model: type[RecordT],
    rows: Iterable[Mapping[str, Any]],
    source: str,
    id_field: str = "id",
) -> tuple[list[RecordT], list[LedgerIssue]]:
    """
    Validate raw store rows into ledger records.

    Rows that don't validate (non-numeric amount, empty id, ...) are left
    out and reported as ``invalid_amount`` issues instead of being zeroed.
    """
    records: list[RecordT] = []
    issues: list[LedgerIssue] = []

    for row in rows:
        try:
            records.append(model.model_validate(row))
        except ValidationError as e:
            record_id = row.get(id_field)
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            logger.warning("Dropping %s row %s: %s", source, record_id, errors)
            issues.append(LedgerIssue(
                kind="invalid_amount",
                source=source,
                record_id=None if record_id is None else str(record_id),
                detail=errors,
            ))

    return records, issues


class LedgerStore(ABC):
    """Read/insert access to one hosted store, keyed by group."""

    @abstractmethod
    async def fetch_members(self, group_id: str) -> tuple[list[Member], list[LedgerIssue]]:
        ...

    @abstractmethod
    async def fetch_expenses(self, group_id: str) -> tuple[list[ExpenseRecord], list[LedgerIssue]]:
        ...

    @abstractmethod
    async def fetch_splits(
        self, expense_ids: Sequence[str]
    ) -> tuple[list[SplitRecord], list[LedgerIssue]]:
        ...

    @abstractmethod
    async def fetch_settlements(
        self, group_id: str
    ) -> tuple[list[SettlementRecord], list[LedgerIssue]]:
        ...

    @abstractmethod
    async def insert_settlement(
        self,
        group_id: str,
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
    ) -> SettlementRecord:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self):
        pass
