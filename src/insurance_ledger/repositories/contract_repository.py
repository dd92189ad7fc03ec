"""Contract repository."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime

from insurance_ledger.core.errors import Conflict
from insurance_ledger.models.contract import Contract, Item
from insurance_ledger.repositories.db_pool import ThreadLocalConnection

_COLUMNS = """
    id,
    username,
    item,
    start_date,
    end_date,
    void,
    contract_type_id,
    claim_index
"""


class ContractRepository:
    """Handles contract persistence, including the claim index array."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Contract:
        return Contract(
            id=row["id"],
            username=row["username"],
            item=Item.from_record(json.loads(row["item"])),
            start_date=datetime.fromisoformat(row["start_date"]),
            end_date=datetime.fromisoformat(row["end_date"]),
            void=bool(row["void"]),
            contract_type_id=row["contract_type_id"],
            claim_index=list(json.loads(row["claim_index"] or "[]")),
        )

    def create_contract(self, contract: Contract) -> None:
        """Insert contract; a duplicate id raises Conflict."""
        try:
            self._pool.execute(
                f"""
                INSERT INTO contracts ({_COLUMNS}, seq)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM contracts))
                """,
                (
                    contract.id,
                    contract.username,
                    json.dumps(contract.item.to_record(), ensure_ascii=False),
                    contract.start_date.isoformat(),
                    contract.end_date.isoformat(),
                    int(contract.void),
                    contract.contract_type_id,
                    json.dumps(contract.claim_index),
                ),
            )
        except sqlite3.IntegrityError as error:
            if "contracts.id" not in str(error):
                raise
            raise Conflict(f"Contract {contract.id} already exists.") from error

    def get_contract(self, contract_id: str) -> Contract | None:
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM contracts WHERE id = ?",
            (contract_id,),
        )
        return self._to_model(row) if row else None

    def list_contracts(self, username: str | None = None) -> list[Contract]:
        """List all contracts, or those owned by username."""
        if username:
            rows = self._pool.fetchall(
                f"SELECT {_COLUMNS} FROM contracts WHERE username = ? ORDER BY seq",
                (username,),
            )
        else:
            rows = self._pool.fetchall(f"SELECT {_COLUMNS} FROM contracts ORDER BY seq")
        return [self._to_model(row) for row in rows]

    def set_claim_index(self, contract_id: str, claim_index: list[str]) -> int:
        """Overwrite the persisted claim index and return affected row count."""
        cursor = self._pool.execute(
            "UPDATE contracts SET claim_index = ? WHERE id = ?",
            (json.dumps(claim_index), contract_id),
        )
        return cursor.rowcount

    def mark_void(self, contract_id: str) -> int:
        """Set void. There is no operation that clears it."""
        cursor = self._pool.execute(
            "UPDATE contracts SET void = 1 WHERE id = ?",
            (contract_id,),
        )
        return cursor.rowcount

    def claim_ids_for(self, contract_id: str) -> list[str]:
        """Derive the claim index from the claims table in filing order."""
        rows = self._pool.fetchall(
            "SELECT id FROM claims WHERE contract_id = ? ORDER BY seq",
            (contract_id,),
        )
        return [row["id"] for row in rows]
