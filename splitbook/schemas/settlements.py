from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, Field
from datetime import datetime

class SettlementCreate(BaseModel):
    from_member_id: str = Field(min_length=1)
    to_member_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, allow_inf_nan=False)

class SettlementOut(BaseModel):
    id: str | None
    group_id: str
    from_member_id: str
    to_member_id: str
    amount: Decimal
    created_at: datetime | None = None

    class Config:
        from_attributes = True

class RefreshRequest(BaseModel):
    reason: Literal["expense", "settlement", "membership", "manual"] = "manual"
