"""Repair order repository."""

from __future__ import annotations

import json
import sqlite3

from insurance_ledger.core.errors import Conflict
from insurance_ledger.models.claim import RepairOrder
from insurance_ledger.models.contract import Item
from insurance_ledger.repositories.db_pool import ThreadLocalConnection


class RepairOrderRepository:
    """Handles repair order persistence."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    @staticmethod
    def _to_model(row: sqlite3.Row) -> RepairOrder:
        return RepairOrder(
            id=row["id"],
            claim_id=row["claim_id"],
            contract_id=row["contract_id"],
            item=Item.from_record(json.loads(row["item"])),
            ready=bool(row["ready"]),
        )

    def create_repair_order(self, order: RepairOrder) -> None:
        """Insert repair order; a second order for the same claim raises Conflict."""
        try:
            self._pool.execute(
                """
                INSERT INTO repair_orders (id, claim_id, contract_id, item, ready)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    order.id,
                    order.claim_id,
                    order.contract_id,
                    json.dumps(order.item.to_record(), ensure_ascii=False),
                    int(order.ready),
                ),
            )
        except sqlite3.IntegrityError as error:
            if "repair_orders." not in str(error):
                raise
            raise Conflict(f"A repair order for claim {order.claim_id} already exists.") from error

    def get_repair_order(self, repair_order_id: str) -> RepairOrder | None:
        row = self._pool.fetchone(
            """
            SELECT id, claim_id, contract_id, item, ready
            FROM repair_orders
            WHERE id = ?
            """,
            (repair_order_id,),
        )
        return self._to_model(row) if row else None

    def list_repair_orders(self, ready: bool | None = None) -> list[RepairOrder]:
        if ready is None:
            rows = self._pool.fetchall(
                "SELECT id, claim_id, contract_id, item, ready FROM repair_orders ORDER BY rowid"
            )
        else:
            rows = self._pool.fetchall(
                """
                SELECT id, claim_id, contract_id, item, ready
                FROM repair_orders
                WHERE ready = ?
                ORDER BY rowid
                """,
                (int(ready),),
            )
        return [self._to_model(row) for row in rows]

    def mark_ready(self, repair_order_id: str) -> int:
        """Set ready on a pending order and return affected row count."""
        cursor = self._pool.execute(
            "UPDATE repair_orders SET ready = 1 WHERE id = ? AND ready = 0",
            (repair_order_id,),
        )
        return cursor.rowcount
