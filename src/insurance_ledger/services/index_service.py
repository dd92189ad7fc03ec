"""Consistency checks for the persisted claim and contract index arrays."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from insurance_ledger.repositories.contract_repository import ContractRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.user_repository import UserRepository


@dataclass
class IndexDiscrepancy:
    """Difference between a persisted index array and the derived view."""

    entity: str
    entity_id: str
    missing: list[str] = field(default_factory=list)
    unexpected: list[str] = field(default_factory=list)
    persisted: list[str] = field(default_factory=list)
    derived: list[str] = field(default_factory=list)


def _compare(entity: str, entity_id: str, persisted: list[str], derived: list[str]) -> IndexDiscrepancy | None:
    if persisted == derived:
        return None
    derived_set = set(derived)
    persisted_set = set(persisted)
    return IndexDiscrepancy(
        entity=entity,
        entity_id=entity_id,
        missing=[item for item in derived if item not in persisted_set],
        unexpected=[item for item in persisted if item not in derived_set],
        persisted=persisted,
        derived=derived,
    )


class IndexService:
    """Recomputes index arrays from child rows and reports or repairs drift."""

    def __init__(
        self,
        pool: ThreadLocalConnection,
        contract_repo: ContractRepository,
        user_repo: UserRepository,
    ):
        self._pool = pool
        self._contract_repo = contract_repo
        self._user_repo = user_repo

    def check(self) -> list[IndexDiscrepancy]:
        """Return every contract and user whose persisted index differs from the derived one."""
        discrepancies: list[IndexDiscrepancy] = []
        with self._pool.transaction():
            for contract in self._contract_repo.list_contracts():
                found = _compare(
                    "contract",
                    contract.id,
                    contract.claim_index,
                    self._contract_repo.claim_ids_for(contract.id),
                )
                if found:
                    discrepancies.append(found)
            for user in self._user_repo.list_users():
                found = _compare(
                    "user",
                    user.username,
                    user.contract_index,
                    self._user_repo.contract_ids_for(user.username),
                )
                if found:
                    discrepancies.append(found)

        for item in discrepancies:
            logger.warning(
                "Index drift on {} {}: missing={} unexpected={}",
                item.entity,
                item.entity_id,
                item.missing,
                item.unexpected,
            )
        return discrepancies

    def rebuild(self) -> int:
        """Rewrite drifted index arrays from the derived view and return the count fixed."""
        fixed = 0
        with self._pool.transaction():
            for item in self.check():
                if item.entity == "contract":
                    self._contract_repo.set_claim_index(item.entity_id, item.derived)
                else:
                    self._user_repo.set_contract_index(item.entity_id, item.derived)
                fixed += 1
        if fixed:
            logger.info("Rebuilt {} index arrays", fixed)
        return fixed
