"""Application dependency container."""

from __future__ import annotations

from dataclasses import dataclass

from insurance_ledger.core.config import AppConfig, ensure_runtime_keys, load_config
from insurance_ledger.core.crypto import PasswordHasher
from insurance_ledger.repositories.audit_repository import AuditRepository
from insurance_ledger.repositories.claim_repository import ClaimRepository
from insurance_ledger.repositories.contract_repository import ContractRepository
from insurance_ledger.repositories.contract_type_repository import ContractTypeRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.repair_order_repository import RepairOrderRepository
from insurance_ledger.repositories.schema import initialize_schema
from insurance_ledger.repositories.user_repository import UserRepository
from insurance_ledger.services.claim_service import ClaimRepositories, ClaimService
from insurance_ledger.services.contract_service import ContractService
from insurance_ledger.services.contract_type_service import ContractTypeService
from insurance_ledger.services.index_service import IndexService
from insurance_ledger.services.repair_service import RepairService
from insurance_ledger.services.user_service import UserService


@dataclass
class ServiceContainer:
    """Wires repositories and services."""

    config: AppConfig
    pool: ThreadLocalConnection
    contract_type_service: ContractTypeService
    user_service: UserService
    contract_service: ContractService
    claim_service: ClaimService
    repair_service: RepairService
    index_service: IndexService
    audit_repo: AuditRepository


def wire_services(config: AppConfig, pool: ThreadLocalConnection) -> ServiceContainer:
    """Build repositories and services on an initialized pool."""
    hasher = PasswordHasher(
        n=config.security.hash_n,
        r=config.security.hash_r,
        p=config.security.hash_p,
    )
    audit_repo = AuditRepository(pool)
    contract_type_repo = ContractTypeRepository(pool)
    user_repo = UserRepository(pool)
    contract_repo = ContractRepository(pool)
    claim_repo = ClaimRepository(pool)
    repair_order_repo = RepairOrderRepository(pool)

    contract_type_service = ContractTypeService(pool, contract_type_repo, audit_repo)
    user_service = UserService(pool, user_repo, audit_repo, hasher)
    contract_service = ContractService(
        pool,
        contract_repo,
        claim_repo,
        user_repo,
        audit_repo,
        contract_type_service,
        user_service,
    )
    claim_service = ClaimService(
        pool,
        ClaimRepositories(
            claims=claim_repo,
            contracts=contract_repo,
            contract_types=contract_type_repo,
            repair_orders=repair_order_repo,
            users=user_repo,
            audit=audit_repo,
        ),
    )

    return ServiceContainer(
        config=config,
        pool=pool,
        contract_type_service=contract_type_service,
        user_service=user_service,
        contract_service=contract_service,
        claim_service=claim_service,
        repair_service=RepairService(pool, repair_order_repo, claim_repo, audit_repo),
        index_service=IndexService(pool, contract_repo, user_repo),
        audit_repo=audit_repo,
    )


def build_container(config: AppConfig | None = None) -> ServiceContainer:
    """Load configuration, initialize schema and build dependencies."""
    config = config or load_config()
    ensure_runtime_keys(config)

    pool = ThreadLocalConnection(config)
    initialize_schema(pool)
    return wire_services(config, pool)
