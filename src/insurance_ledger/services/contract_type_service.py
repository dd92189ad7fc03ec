"""Contract type catalog service."""

from __future__ import annotations

from dataclasses import asdict

from loguru import logger

from insurance_ledger.core.errors import NotFound
from insurance_ledger.core.validation import (
    validate_amount,
    validate_duration_bounds,
    validate_identifier,
    validate_required_text,
)
from insurance_ledger.models.catalog import ContractType
from insurance_ledger.repositories.audit_repository import AuditRepository
from insurance_ledger.repositories.contract_type_repository import ContractTypeRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection


class ContractTypeService:
    """Coordinates the read-mostly catalog of coverage templates."""

    def __init__(
        self,
        pool: ThreadLocalConnection,
        contract_type_repo: ContractTypeRepository,
        audit_repo: AuditRepository,
    ):
        self._pool = pool
        self._contract_type_repo = contract_type_repo
        self._audit_repo = audit_repo

    @staticmethod
    def _validate(payload: ContractType) -> ContractType:
        min_days, max_days = validate_duration_bounds(
            int(payload.min_duration_days),
            int(payload.max_duration_days),
        )
        return ContractType(
            id=validate_identifier(payload.id, "id"),
            shop_type=validate_required_text(payload.shop_type, "shop_type"),
            formula_per_day=validate_required_text(payload.formula_per_day, "formula_per_day"),
            max_sum_insured=validate_amount(payload.max_sum_insured, "max_sum_insured", allow_zero=False),
            theft_insured=bool(payload.theft_insured),
            description=(payload.description or "").strip(),
            conditions=(payload.conditions or "").strip(),
            active=bool(payload.active),
            min_duration_days=min_days,
            max_duration_days=max_days,
        )

    def list(self, shop_type: str | None = None, active_only: bool = False) -> list[ContractType]:
        """List contract types.

        A shop type filter implies active types only; an unfiltered listing
        includes inactive types unless active_only is set.
        """
        shop_type = (shop_type or "").strip() or None
        return self._contract_type_repo.list_contract_types(
            shop_type=shop_type,
            active_only=active_only or shop_type is not None,
        )

    def get(self, contract_type_id: str) -> ContractType:
        contract_type = self._contract_type_repo.get_contract_type(contract_type_id)
        if contract_type is None:
            raise NotFound(f"Contract type {contract_type_id} could not be found.")
        return contract_type

    def create(self, payload: ContractType) -> None:
        """Validate and insert a contract type."""
        validated = self._validate(payload)
        with self._pool.transaction():
            self._contract_type_repo.create_contract_type(validated)
            self._audit_repo.add_log(
                "CREATE",
                "contract_type",
                validated.id,
                {"event": "contract type created", "after": asdict(validated)},
            )
        logger.info("Contract type {} created for shop type {}", validated.id, validated.shop_type)

    def set_active(self, contract_type_id: str, active: bool) -> None:
        with self._pool.transaction():
            updated = self._contract_type_repo.set_active(contract_type_id, active)
            if updated == 0:
                raise NotFound(f"Contract type {contract_type_id} could not be found.")
            self._audit_repo.add_log(
                "UPDATE",
                "contract_type",
                contract_type_id,
                {"event": "contract type activation changed", "active": active},
            )
        logger.info("Contract type {} active={}", contract_type_id, active)
