from datetime import datetime
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from splitbook.core.utils import to_decimal

MemberId = str


class LedgerModel(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_raw(cls, value, info):
        # uuid columns come back as UUID objects from some drivers
        if info.field_name.endswith("id") and value is not None and not isinstance(value, str):
            return str(value)
        if info.field_name == "amount" and isinstance(value, float):
            return to_decimal(value)
        return value


class Member(LedgerModel):
    id: MemberId = Field(min_length=1)
    display_name: str = ""


class ExpenseRecord(LedgerModel):
    id: str = Field(min_length=1)
    paid_by_member_id: MemberId = Field(min_length=1)
    amount: Decimal = Field(ge=0, allow_inf_nan=False)


class SplitRecord(LedgerModel):
    expense_id: str = Field(min_length=1)
    member_id: MemberId = Field(min_length=1)
    amount: Decimal = Field(allow_inf_nan=False)


class SettlementRecord(LedgerModel):
    id: str | None = None
    group_id: str = Field(min_length=1)
    from_member_id: MemberId = Field(min_length=1)
    to_member_id: MemberId = Field(min_length=1)
    amount: Decimal = Field(gt=0, allow_inf_nan=False)
    created_at: datetime | None = None


class NetBalance(LedgerModel):
    member_id: MemberId
    amount: Decimal


class Transfer(LedgerModel):
    from_member_id: MemberId
    to_member_id: MemberId
    amount: Decimal = Field(gt=0)


IssueKind = Literal["invalid_reference", "invalid_amount"]
IssueSource = Literal["member", "expense", "split", "settlement"]


class LedgerIssue(LedgerModel):
    kind: IssueKind
    source: IssueSource
    record_id: str | None = None
    detail: str


class BalanceReport(BaseModel):
    balances: list[NetBalance] = []
    issues: list[LedgerIssue] = []
