"""Claim lifecycle engine.

Status machine::

    non-theft:  New -> Rejected | Repair | Reimbursement
    theft:      New -> TheftConfirmed | Rejected      (confirm_theft)
                TheftConfirmed -> Reimbursement | Rejected

``Rejected`` and ``Reimbursement`` are terminal. ``Repair`` stays the status
after the repair order completes; only ``repaired`` flips.

Every mutating call runs in one ``BEGIN IMMEDIATE`` unit and re-reads the
claim after the lock is taken, so two processors cannot both pass the same
``New`` check.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from insurance_ledger.core.errors import Conflict, InvalidInput, InvalidTransition, NotFound
from insurance_ledger.core.validation import (
    validate_amount,
    validate_identifier,
    validate_required_text,
)
from insurance_ledger.models.claim import (
    Claim,
    ClaimCreate,
    ClaimStatus,
    RepairOrder,
    TheftClaimView,
)
from insurance_ledger.repositories.audit_repository import AuditRepository
from insurance_ledger.repositories.claim_repository import ClaimRepository
from insurance_ledger.repositories.contract_repository import ContractRepository
from insurance_ledger.repositories.contract_type_repository import ContractTypeRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.repair_order_repository import RepairOrderRepository
from insurance_ledger.repositories.user_repository import UserRepository

PROCESS_TARGETS = frozenset(
    {ClaimStatus.REPAIR, ClaimStatus.REIMBURSEMENT, ClaimStatus.REJECTED}
)


@dataclass
class ClaimRepositories:
    """Repositories the lifecycle engine reads and writes."""

    claims: ClaimRepository
    contracts: ContractRepository
    contract_types: ContractTypeRepository
    repair_orders: RepairOrderRepository
    users: UserRepository
    audit: AuditRepository


def check_process_transition(claim: Claim, new_status: ClaimStatus) -> None:
    """Raise InvalidTransition when the insurer may not move claim to new_status."""
    if not claim.is_theft and claim.status is not ClaimStatus.NEW and new_status is not ClaimStatus.REJECTED:
        raise InvalidTransition("Cannot change the status of a non-new claim.")
    if claim.is_theft and claim.status is ClaimStatus.NEW and new_status is not ClaimStatus.REJECTED:
        raise InvalidTransition("Theft must first be confirmed by authorities.")
    if claim.is_theft and claim.status.is_terminal and new_status is not ClaimStatus.REJECTED:
        raise InvalidTransition("Cannot change the status of a decided theft claim.")
    if new_status is ClaimStatus.REPAIR and claim.is_theft:
        raise InvalidTransition("Cannot repair stolen items.")
    if new_status not in PROCESS_TARGETS:
        raise InvalidTransition(f"Unknown status change: {new_status.value}.")


def check_theft_review(claim: Claim) -> None:
    """Raise InvalidTransition unless claim is a theft claim awaiting police review."""
    if not claim.is_theft or claim.status is not ClaimStatus.NEW:
        raise InvalidTransition("Claim is either not related to theft or has an invalid status.")


class ClaimService:
    """Coordinates filing, insurer decisions and police review of claims."""

    def __init__(self, pool: ThreadLocalConnection, repos: ClaimRepositories):
        self._pool = pool
        self._repos = repos

    def _locked_claim(self, claim_id: str, contract_id: str) -> Claim:
        claim = self._repos.claims.find_claim(claim_id, contract_id)
        if claim is None:
            raise NotFound("Claim cannot be found.")
        return claim

    def get(self, claim_id: str, contract_id: str) -> Claim:
        return self._locked_claim(claim_id, contract_id)

    def file(self, payload: ClaimCreate) -> Claim:
        """File a claim against a live contract and index it on the contract."""
        claim = Claim(
            id=validate_identifier(payload.id or uuid.uuid4(), "id"),
            contract_id=payload.contract_id,
            date=payload.date,
            description=validate_required_text(payload.description, "description"),
            is_theft=bool(payload.is_theft),
        )

        with self._pool.transaction():
            contract = self._repos.contracts.get_contract(claim.contract_id)
            if contract is None:
                raise NotFound("Contract could not be found.")
            if contract.void:
                raise Conflict(f"Contract {contract.id} is void and accepts no new claims.")
            if claim.is_theft:
                contract_type = self._repos.contract_types.get_contract_type(contract.contract_type_id)
                if contract_type is None:
                    raise NotFound(f"Contract type {contract.contract_type_id} could not be found.")
                if not contract_type.theft_insured:
                    raise Conflict(f"Contract {contract.id} does not cover theft.")

            self._repos.claims.create_claim(claim)
            self._repos.contracts.set_claim_index(contract.id, contract.claim_index + [claim.id])
            self._repos.audit.add_log(
                "CREATE",
                "claim",
                claim.id,
                {"event": "claim filed", "contract_id": contract.id, "is_theft": claim.is_theft},
            )

        logger.info("Claim {} filed on contract {} (theft: {})", claim.id, claim.contract_id, claim.is_theft)
        return claim

    def process(
        self,
        claim_id: str,
        contract_id: str,
        new_status: ClaimStatus,
        reimbursable: Decimal | None = None,
    ) -> Claim:
        """Apply an insurer decision to a claim."""
        with self._pool.transaction():
            claim = self._locked_claim(claim_id, contract_id)
            check_process_transition(claim, new_status)
            previous = claim.status

            if new_status is ClaimStatus.REPAIR:
                contract = self._repos.contracts.get_contract(claim.contract_id)
                if contract is None:
                    raise NotFound("Contract could not be found.")
                order = RepairOrder(
                    id=str(uuid.uuid4()),
                    claim_id=claim.id,
                    contract_id=contract.id,
                    item=contract.item,
                )
                self._repos.repair_orders.create_repair_order(order)
                logger.info("Repair order {} opened for claim {}", order.id, claim.id)
            elif new_status is ClaimStatus.REIMBURSEMENT:
                if reimbursable is None:
                    raise InvalidInput("reimbursable is required for reimbursement.")
                claim.reimbursable = validate_amount(reimbursable, "reimbursable")
                if claim.is_theft:
                    self._repos.contracts.mark_void(claim.contract_id)
                    logger.info("Contract {} voided by theft reimbursement", claim.contract_id)
            else:
                claim.reimbursable = Decimal("0")

            claim.status = new_status
            self._repos.claims.update_decision(claim.id, claim.status, claim.reimbursable)
            self._repos.audit.add_log(
                "UPDATE",
                "claim",
                claim.id,
                {
                    "event": "claim processed",
                    "before": previous.value,
                    "after": new_status.value,
                    "reimbursable": str(claim.reimbursable),
                },
            )

        logger.info("Claim {} moved {} -> {}", claim.id, previous.value, new_status.value)
        return claim

    def confirm_theft(
        self,
        claim_id: str,
        contract_id: str,
        confirmed: bool,
        file_reference: str,
    ) -> Claim:
        """Record the police verdict on a pending theft claim."""
        with self._pool.transaction():
            claim = self._locked_claim(claim_id, contract_id)
            check_theft_review(claim)

            claim.status = ClaimStatus.THEFT_CONFIRMED if confirmed else ClaimStatus.REJECTED
            claim.file_reference = file_reference or ""
            self._repos.claims.update_theft_review(claim.id, claim.status, claim.file_reference)
            self._repos.audit.add_log(
                "UPDATE",
                "claim",
                claim.id,
                {
                    "event": "theft reviewed",
                    "confirmed": confirmed,
                    "file_reference": claim.file_reference,
                },
            )

        logger.info("Theft claim {} reviewed by police: {}", claim.id, claim.status.value)
        return claim

    def list(self, status: ClaimStatus | None = None) -> list[Claim]:
        return self._repos.claims.list_claims(status)

    def list_theft_pending(self) -> list[TheftClaimView]:
        """List theft claims awaiting police review with their item and owner."""
        views: list[TheftClaimView] = []
        for claim in self._repos.claims.list_theft_pending():
            contract = self._repos.contracts.get_contract(claim.contract_id)
            if contract is None:
                logger.error("Theft claim {} references missing contract {}", claim.id, claim.contract_id)
                raise NotFound(f"Contract {claim.contract_id} could not be found.")
            user = self._repos.users.get_user(contract.username)
            if user is None:
                logger.error("Contract {} references missing user {}", contract.id, contract.username)
                raise NotFound(f"User {contract.username} could not be found.")
            views.append(
                TheftClaimView(
                    claim_id=claim.id,
                    contract_id=contract.id,
                    item=contract.item,
                    description=claim.description,
                    owner_name=user.full_name,
                )
            )
        return views
