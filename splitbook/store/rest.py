"""
LedgerStore backed by the hosted backend's REST interface (PostgREST).

Tables are read with filter query strings such as ``group_id=eq.<id>``;
inserts ask for ``return=representation`` so the stored row comes back.
"""
import json
import logging
from decimal import Decimal
from typing import Any, Sequence

import httpx

from splitbook.core.errors import SettlementWriteError, StoreError
from splitbook.schemas.ledger import (
    ExpenseRecord,
    LedgerIssue,
    Member,
    SettlementRecord,
    SplitRecord,
)
from splitbook.store.base import LedgerStore, parse_records

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"


def _quote(value: str) -> str:
    # PostgREST reads backslash escapes inside double quotes
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _in_filter(values: Sequence[str]) -> str:
    quoted = ",".join(_quote(v) for v in values)
    return f"in.({quoted})"


def _settlement_row(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "group_id": row.get("group_id"),
        "from_member_id": row.get("from_user_id"),
        "to_member_id": row.get("to_user_id"),
        "amount": row.get("amount"),
        "created_at": row.get("created_at"),
    }


class RestLedgerStore(LedgerStore):

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @classmethod
    def from_settings(cls, base_url: str, api_key: str, timeout: float = 5.0):
        headers = {}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + REST_PREFIX,
            headers=headers,
            timeout=timeout,
        )
        return cls(client)

    async def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            res = await self.client.get(f"/{table}", params=params)
            res.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"Reading {table} failed: {e}") from e

        try:
            # keep numeric columns exact
            rows = json.loads(res.text, parse_float=Decimal)
        except ValueError as e:
            raise StoreError(f"Reading {table} returned a non-JSON body") from e

        if not isinstance(rows, list):
            raise StoreError(f"Reading {table} returned {type(rows).__name__}, expected rows")
        return rows

    async def fetch_members(self, group_id: str) -> tuple[list[Member], list[LedgerIssue]]:
        rows = await self._select("group_members", {
            "select": "user_id,joined_at,users(name)",
            "group_id": f"eq.{group_id}",
            "order": "joined_at.asc",
        })
        members = [
            {"id": r.get("user_id"), "display_name": (r.get("users") or {}).get("name") or ""}
            for r in rows
        ]
        return parse_records(Member, members, "member")

    async def fetch_expenses(self, group_id: str) -> tuple[list[ExpenseRecord], list[LedgerIssue]]:
        rows = await self._select("expenses", {
            "select": "id,paid_by,amount",
            "group_id": f"eq.{group_id}",
            "order": "created_at.asc",
        })
        expenses = [
            {"id": r.get("id"), "paid_by_member_id": r.get("paid_by"), "amount": r.get("amount")}
            for r in rows
        ]
        return parse_records(ExpenseRecord, expenses, "expense")

    async def fetch_splits(
        self, expense_ids: Sequence[str]
    ) -> tuple[list[SplitRecord], list[LedgerIssue]]:
        if not expense_ids:
            return [], []

        rows = await self._select("expense_splits", {
            "select": "expense_id,user_id,amount",
            "expense_id": _in_filter(expense_ids),
        })
        splits = [
            {"expense_id": r.get("expense_id"), "member_id": r.get("user_id"), "amount": r.get("amount")}
            for r in rows
        ]
        return parse_records(SplitRecord, splits, "split", id_field="expense_id")

    async def fetch_settlements(
        self, group_id: str
    ) -> tuple[list[SettlementRecord], list[LedgerIssue]]:
        rows = await self._select("settlements", {
            "select": "id,group_id,from_user_id,to_user_id,amount,created_at",
            "group_id": f"eq.{group_id}",
            "order": "created_at.desc",
        })
        return parse_records(
            SettlementRecord, [_settlement_row(r) for r in rows], "settlement"
        )

    async def insert_settlement(
        self,
        group_id: str,
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
    ) -> SettlementRecord:
        payload = {
            "group_id": group_id,
            "from_user_id": from_member_id,
            "to_user_id": to_member_id,
            "amount": str(amount),
        }

        try:
            res = await self.client.post(
                "/settlements",
                json=payload,
                headers={"Prefer": "return=representation"},
            )
            res.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Settlement insert failed for group %s: %s", group_id, e)
            raise SettlementWriteError(f"Could not record settlement: {e}") from e

        try:
            rows = json.loads(res.text, parse_float=Decimal)
            if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
                raise SettlementWriteError("Store returned no settlement row")
            return SettlementRecord.model_validate(_settlement_row(rows[0]))
        except ValueError as e:
            # the row may be stored even though we can't read it back
            logger.error("Unreadable settlement insert response for group %s: %s", group_id, e)
            raise SettlementWriteError(f"Store returned an unreadable settlement: {e}") from e

    async def ping(self) -> bool:
        try:
            res = await self.client.get("/")
            return res.status_code < 500
        except httpx.HTTPError as e:
            logger.warning("Store ping failed: %s", e)
            return False

    async def close(self):
        await self.client.aclose()
