"""Contract type repository."""

from __future__ import annotations

import sqlite3
from decimal import Decimal

from insurance_ledger.core.errors import Conflict
from insurance_ledger.models.catalog import ContractType
from insurance_ledger.repositories.db_pool import ThreadLocalConnection

_COLUMNS = """
    id,
    shop_type,
    formula_per_day,
    max_sum_insured,
    theft_insured,
    description,
    conditions,
    active,
    min_duration_days,
    max_duration_days
"""


class ContractTypeRepository:
    """Handles contract type persistence."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    @staticmethod
    def _to_model(row: sqlite3.Row) -> ContractType:
        return ContractType(
            id=row["id"],
            shop_type=row["shop_type"],
            formula_per_day=row["formula_per_day"],
            max_sum_insured=Decimal(row["max_sum_insured"]),
            theft_insured=bool(row["theft_insured"]),
            description=row["description"] or "",
            conditions=row["conditions"] or "",
            active=bool(row["active"]),
            min_duration_days=int(row["min_duration_days"]),
            max_duration_days=int(row["max_duration_days"]),
        )

    def create_contract_type(self, payload: ContractType) -> None:
        """Insert a contract type; duplicate ids raise Conflict."""
        try:
            self._pool.execute(
                f"""
                INSERT INTO contract_types ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    payload.id,
                    payload.shop_type,
                    payload.formula_per_day,
                    str(payload.max_sum_insured),
                    int(payload.theft_insured),
                    payload.description,
                    payload.conditions,
                    int(payload.active),
                    payload.min_duration_days,
                    payload.max_duration_days,
                ),
            )
        except sqlite3.IntegrityError as error:
            if "contract_types.id" not in str(error):
                raise
            raise Conflict(f"Contract type {payload.id} already exists.") from error

    def get_contract_type(self, contract_type_id: str) -> ContractType | None:
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM contract_types WHERE id = ?",
            (contract_type_id,),
        )
        return self._to_model(row) if row else None

    def list_contract_types(
        self,
        shop_type: str | None = None,
        active_only: bool = False,
    ) -> list[ContractType]:
        """List contract types by case-insensitive shop type substring.

        Case folding happens in Python; SQLite's ``upper()`` only folds ASCII.
        """
        where_sql = "WHERE active = 1" if active_only else ""
        rows = self._pool.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM contract_types
            {where_sql}
            ORDER BY rowid
            """
        )
        contract_types = [self._to_model(row) for row in rows]
        if shop_type:
            needle = shop_type.casefold()
            contract_types = [item for item in contract_types if needle in item.shop_type.casefold()]
        return contract_types

    def set_active(self, contract_type_id: str, active: bool) -> int:
        """Update the active flag and return affected row count."""
        cursor = self._pool.execute(
            "UPDATE contract_types SET active = ? WHERE id = ?",
            (int(active), contract_type_id),
        )
        return cursor.rowcount
