from decimal import Decimal
from pydantic import BaseModel
from splitbook.schemas.ledger import LedgerIssue

class MemberBalance(BaseModel):
    member_id: str
    name: str | None
    amount: Decimal

class SettlementSuggestion(BaseModel):
    from_id: str
    from_name: str | None
    to_id: str
    to_name: str | None
    amount: Decimal

class GroupBalanceOut(BaseModel):
    group_id: str
    balances: list[MemberBalance]
    settlements: list[SettlementSuggestion]
    issues: list[LedgerIssue] = []
    settled: bool
