"""Contract provisioning service."""

from __future__ import annotations

from loguru import logger

from insurance_ledger.core.errors import Conflict, InvalidInput, NotFound, Unauthorized
from insurance_ledger.core.validation import (
    validate_amount,
    validate_contract_period,
    validate_identifier,
    validate_required_text,
    validate_username,
)
from insurance_ledger.models.claim import ContractWithClaims
from insurance_ledger.models.contract import Contract, ContractCreate, ContractCreated, Item
from insurance_ledger.repositories.audit_repository import AuditRepository
from insurance_ledger.repositories.claim_repository import ClaimRepository
from insurance_ledger.repositories.contract_repository import ContractRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.user_repository import UserRepository
from insurance_ledger.services.contract_type_service import ContractTypeService
from insurance_ledger.services.user_service import UserService


class ContractService:
    """Issues contracts and keeps each user's contract index in step."""

    def __init__(
        self,
        pool: ThreadLocalConnection,
        contract_repo: ContractRepository,
        claim_repo: ClaimRepository,
        user_repo: UserRepository,
        audit_repo: AuditRepository,
        contract_type_service: ContractTypeService,
        user_service: UserService,
    ):
        self._pool = pool
        self._contract_repo = contract_repo
        self._claim_repo = claim_repo
        self._user_repo = user_repo
        self._audit_repo = audit_repo
        self._contract_type_service = contract_type_service
        self._user_service = user_service

    @staticmethod
    def _validate_item(item: Item) -> Item:
        return Item(
            brand=validate_required_text(item.brand, "item.brand"),
            model=validate_required_text(item.model, "item.model"),
            price=validate_amount(item.price, "item.price", allow_zero=False),
            description=(item.description or "").strip(),
            serial_no=validate_required_text(item.serial_no, "item.serial_no"),
        )

    def create_contract(self, payload: ContractCreate) -> ContractCreated:
        """Issue a contract, registering the user on first purchase.

        Existing users must present their password. New users are created in
        the same transaction as the contract and the plaintext password is
        echoed back once.
        """
        contract_id = validate_identifier(payload.id, "id")
        username = validate_username(payload.username)
        item = self._validate_item(payload.item)

        with self._pool.transaction():
            contract_type = self._contract_type_service.get(payload.contract_type_id)
            if not contract_type.active:
                raise Conflict(f"Contract type {contract_type.id} is not active.")
            validate_contract_period(
                payload.start_date,
                payload.end_date,
                contract_type.min_duration_days,
                contract_type.max_duration_days,
            )
            if item.price > contract_type.max_sum_insured:
                raise InvalidInput(
                    f"Item price {item.price} exceeds the maximum sum insured "
                    f"({contract_type.max_sum_insured})."
                )

            user = self._user_repo.get_user(username)
            created_user = user is None
            if user is None:
                user = self._user_service.register(username, payload.password, payload.profile)
            elif not self._user_service.verify(user, payload.password):
                raise Unauthorized("Invalid credentials.")

            contract = Contract(
                id=contract_id,
                username=user.username,
                item=item,
                start_date=payload.start_date,
                end_date=payload.end_date,
                void=False,
                contract_type_id=contract_type.id,
            )
            self._contract_repo.create_contract(contract)
            self._user_repo.set_contract_index(user.username, user.contract_index + [contract.id])
            self._audit_repo.add_log(
                "CREATE",
                "contract",
                contract.id,
                {
                    "event": "contract created",
                    "username": user.username,
                    "contract_type_id": contract_type.id,
                    "item": item.to_record(),
                },
            )

        logger.info("Contract {} issued to {} (new user: {})", contract.id, user.username, created_user)
        return ContractCreated(
            contract_id=contract.id,
            username=user.username,
            password=payload.password if created_user else None,
        )

    def get(self, contract_id: str) -> Contract:
        contract = self._contract_repo.get_contract(contract_id)
        if contract is None:
            raise NotFound(f"Contract {contract_id} could not be found.")
        return contract

    def list_contracts(self, username: str | None = None) -> list[ContractWithClaims]:
        """List contracts; a username filter also resolves each contract's claims."""
        contracts = self._contract_repo.list_contracts(username=username or None)
        if not username:
            return [ContractWithClaims(contract=contract) for contract in contracts]

        results: list[ContractWithClaims] = []
        for contract in contracts:
            claims = []
            for claim_id in contract.claim_index:
                claim = self._claim_repo.get_claim(claim_id)
                if claim is None:
                    logger.error("Contract {} indexes missing claim {}", contract.id, claim_id)
                    raise NotFound(f"Claim {claim_id} indexed by contract {contract.id} is missing.")
                claims.append(claim)
            results.append(ContractWithClaims(contract=contract, claims=claims))
        return results
