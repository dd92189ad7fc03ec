"""Repair order workflow service."""

from __future__ import annotations

from loguru import logger

from insurance_ledger.core.errors import Conflict, NotFound
from insurance_ledger.models.claim import RepairOrder
from insurance_ledger.repositories.audit_repository import AuditRepository
from insurance_ledger.repositories.claim_repository import ClaimRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.repair_order_repository import RepairOrderRepository


class RepairService:
    """Lets the repair shop see pending work and close orders."""

    def __init__(
        self,
        pool: ThreadLocalConnection,
        repair_order_repo: RepairOrderRepository,
        claim_repo: ClaimRepository,
        audit_repo: AuditRepository,
    ):
        self._pool = pool
        self._repair_order_repo = repair_order_repo
        self._claim_repo = claim_repo
        self._audit_repo = audit_repo

    def list_pending(self) -> list[RepairOrder]:
        return self._repair_order_repo.list_repair_orders(ready=False)

    def complete(self, repair_order_id: str) -> RepairOrder:
        """Mark an order ready and flag its claim as repaired.

        The order's own completion is authoritative: a missing claim is
        logged and the order still completes.
        """
        with self._pool.transaction():
            order = self._repair_order_repo.get_repair_order(repair_order_id)
            if order is None:
                raise NotFound("Could not find the repair order.")
            if self._repair_order_repo.mark_ready(order.id) == 0:
                raise Conflict(f"Repair order {order.id} is already completed.")
            order.ready = True

            if self._claim_repo.mark_repaired(order.claim_id, order.contract_id) == 0:
                logger.warning(
                    "Repair order {} completed but claim {} on contract {} was not found",
                    order.id,
                    order.claim_id,
                    order.contract_id,
                )
            self._audit_repo.add_log(
                "UPDATE",
                "repair_order",
                order.id,
                {"event": "repair order completed", "claim_id": order.claim_id},
            )

        logger.info("Repair order {} completed", order.id)
        return order
