"""Claim repository."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from decimal import Decimal

from insurance_ledger.core.errors import Conflict
from insurance_ledger.models.claim import Claim, ClaimStatus
from insurance_ledger.repositories.db_pool import ThreadLocalConnection

_COLUMNS = """
    id,
    contract_id,
    date,
    description,
    is_theft,
    status,
    reimbursable,
    repaired,
    file_reference
"""


class ClaimRepository:
    """Handles claim persistence."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    @staticmethod
    def _to_model(row: sqlite3.Row) -> Claim:
        return Claim(
            id=row["id"],
            contract_id=row["contract_id"],
            date=datetime.fromisoformat(row["date"]),
            description=row["description"],
            is_theft=bool(row["is_theft"]),
            status=ClaimStatus(row["status"]),
            reimbursable=Decimal(row["reimbursable"]),
            repaired=bool(row["repaired"]),
            file_reference=row["file_reference"] or "",
        )

    def create_claim(self, claim: Claim) -> None:
        """Insert claim; a duplicate id raises Conflict."""
        try:
            self._pool.execute(
                f"""
                INSERT INTO claims ({_COLUMNS}, seq)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM claims))
                """,
                (
                    claim.id,
                    claim.contract_id,
                    claim.date.isoformat(),
                    claim.description,
                    int(claim.is_theft),
                    claim.status.value,
                    str(claim.reimbursable),
                    int(claim.repaired),
                    claim.file_reference,
                ),
            )
        except sqlite3.IntegrityError as error:
            if "claims.id" not in str(error):
                raise
            raise Conflict(f"Claim {claim.id} already exists.") from error

    def get_claim(self, claim_id: str) -> Claim | None:
        row = self._pool.fetchone(f"SELECT {_COLUMNS} FROM claims WHERE id = ?", (claim_id,))
        return self._to_model(row) if row else None

    def find_claim(self, claim_id: str, contract_id: str) -> Claim | None:
        """Fetch a claim only when it belongs to contract_id."""
        row = self._pool.fetchone(
            f"SELECT {_COLUMNS} FROM claims WHERE id = ? AND contract_id = ?",
            (claim_id, contract_id),
        )
        return self._to_model(row) if row else None

    def list_claims(self, status: ClaimStatus | None = None) -> list[Claim]:
        if status is None:
            rows = self._pool.fetchall(f"SELECT {_COLUMNS} FROM claims ORDER BY seq")
        else:
            rows = self._pool.fetchall(
                f"SELECT {_COLUMNS} FROM claims WHERE status = ? ORDER BY seq",
                (status.value,),
            )
        return [self._to_model(row) for row in rows]

    def list_theft_pending(self) -> list[Claim]:
        rows = self._pool.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM claims
            WHERE is_theft = 1 AND status = ?
            ORDER BY seq
            """,
            (ClaimStatus.NEW.value,),
        )
        return [self._to_model(row) for row in rows]

    def update_decision(self, claim_id: str, status: ClaimStatus, reimbursable: Decimal) -> int:
        """Persist status and reimbursable amount and return affected row count."""
        cursor = self._pool.execute(
            "UPDATE claims SET status = ?, reimbursable = ? WHERE id = ?",
            (status.value, str(reimbursable), claim_id),
        )
        return cursor.rowcount

    def update_theft_review(self, claim_id: str, status: ClaimStatus, file_reference: str) -> int:
        cursor = self._pool.execute(
            "UPDATE claims SET status = ?, file_reference = ? WHERE id = ?",
            (status.value, file_reference, claim_id),
        )
        return cursor.rowcount

    def mark_repaired(self, claim_id: str, contract_id: str) -> int:
        cursor = self._pool.execute(
            "UPDATE claims SET repaired = 1 WHERE id = ? AND contract_id = ?",
            (claim_id, contract_id),
        )
        return cursor.rowcount
