"""Typed operation variants accepted by the dispatcher, grouped by role."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from insurance_ledger.core.errors import InvalidInput
from insurance_ledger.core.validation import parse_datetime, validate_amount
from insurance_ledger.models.catalog import ContractType
from insurance_ledger.models.claim import ClaimCreate, ClaimStatus
from insurance_ledger.models.contract import ContractCreate, Item, Profile

if TYPE_CHECKING:
    from insurance_ledger.core.container import ServiceContainer


class Role(str, Enum):
    SHOP = "shop"
    INSURER = "insurer"
    REPAIR_SHOP = "repair_shop"
    POLICE = "police"

    @classmethod
    def parse(cls, value: str) -> "Role":
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise InvalidInput(f"Unknown role: {value!r}") from error


def _require(params: dict[str, Any], key: str) -> Any:
    if key not in params or params[key] is None:
        raise InvalidInput(f"Missing parameter: {key}")
    return params[key]


def _text(params: dict[str, Any], key: str, default: str | None = None) -> str:
    value = params.get(key)
    if value is None:
        if default is None:
            raise InvalidInput(f"Missing parameter: {key}")
        return default
    if not isinstance(value, str):
        raise InvalidInput(f"Parameter {key} must be a string.")
    return value


def _flag(params: dict[str, Any], key: str) -> bool:
    value = _require(params, key)
    if not isinstance(value, bool):
        raise InvalidInput(f"Parameter {key} must be true or false.")
    return value


def _integer(params: dict[str, Any], key: str) -> int:
    value = _require(params, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"Parameter {key} must be an integer.")
    return value


def _item(params: dict[str, Any]) -> Item:
    raw = _require(params, "item")
    if not isinstance(raw, dict):
        raise InvalidInput("Parameter item must be an object.")
    return Item(
        brand=_text(raw, "brand"),
        model=_text(raw, "model"),
        price=validate_amount(_require(raw, "price"), "item.price", allow_zero=False),
        description=_text(raw, "description", default=""),
        serial_no=_text(raw, "serial_no"),
    )


@dataclass(frozen=True)
class Operation:
    """Base for all operation variants."""

    name: ClassVar[str] = ""
    roles: ClassVar[frozenset[Role]] = frozenset()

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "Operation":
        return cls()

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        raise NotImplementedError


# Insurer / shop


@dataclass(frozen=True)
class ListContractTypes(Operation):
    name: ClassVar[str] = "contract_type_ls"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER, Role.SHOP})

    shop_type: str | None = None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "ListContractTypes":
        return cls(shop_type=_text(params, "shop_type", default="") or None)

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.contract_type_service.list(
            shop_type=self.shop_type,
            active_only=role is Role.SHOP,
        )


@dataclass(frozen=True)
class CreateContractType(Operation):
    name: ClassVar[str] = "contract_type_create"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    contract_type: ContractType

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "CreateContractType":
        return cls(
            contract_type=ContractType(
                id=_text(params, "uuid"),
                shop_type=_text(params, "shop_type"),
                formula_per_day=_text(params, "formula_per_day"),
                max_sum_insured=validate_amount(_require(params, "max_sum_insured"), "max_sum_insured"),
                theft_insured=_flag(params, "theft_insured"),
                description=_text(params, "description", default=""),
                conditions=_text(params, "conditions", default=""),
                active=_flag(params, "active"),
                min_duration_days=_integer(params, "min_duration_days"),
                max_duration_days=_integer(params, "max_duration_days"),
            )
        )

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        services.contract_type_service.create(self.contract_type)
        return None


@dataclass(frozen=True)
class SetContractTypeActive(Operation):
    name: ClassVar[str] = "contract_type_set_active"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    contract_type_id: str
    active: bool

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "SetContractTypeActive":
        return cls(contract_type_id=_text(params, "uuid"), active=_flag(params, "active"))

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        services.contract_type_service.set_active(self.contract_type_id, self.active)
        return None


@dataclass(frozen=True)
class ListContracts(Operation):
    name: ClassVar[str] = "contract_ls"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    username: str | None = None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "ListContracts":
        return cls(username=_text(params, "username", default="") or None)

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.contract_service.list_contracts(self.username)


@dataclass(frozen=True)
class ListClaims(Operation):
    name: ClassVar[str] = "claim_ls"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    status: ClaimStatus | None = None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "ListClaims":
        raw = _text(params, "status", default="").strip()
        if not raw:
            return cls()
        try:
            return cls(status=ClaimStatus.parse(raw))
        except InvalidInput:
            # Unrecognised filters list everything.
            return cls()

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.claim_service.list(self.status)


@dataclass(frozen=True)
class FileClaim(Operation):
    name: ClassVar[str] = "claim_file"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    claim: ClaimCreate

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "FileClaim":
        return cls(
            claim=ClaimCreate(
                id=_text(params, "uuid", default="") or None,
                contract_id=_text(params, "contract_uuid"),
                date=parse_datetime(_require(params, "date"), "date"),
                description=_text(params, "description"),
                is_theft=_flag(params, "is_theft"),
            )
        )

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.claim_service.file(self.claim)


@dataclass(frozen=True)
class ProcessClaim(Operation):
    name: ClassVar[str] = "claim_process"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    claim_id: str
    contract_id: str
    status: ClaimStatus
    reimbursable: Decimal | None = None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "ProcessClaim":
        raw_amount = params.get("reimbursable")
        return cls(
            claim_id=_text(params, "uuid"),
            contract_id=_text(params, "contract_uuid"),
            status=ClaimStatus.parse(_text(params, "status")),
            reimbursable=None if raw_amount is None else validate_amount(raw_amount, "reimbursable"),
        )

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.claim_service.process(
            self.claim_id,
            self.contract_id,
            self.status,
            self.reimbursable,
        )


@dataclass(frozen=True)
class AuthenticateUser(Operation):
    name: ClassVar[str] = "user_authenticate"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    username: str
    password: str

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "AuthenticateUser":
        return cls(username=_text(params, "username"), password=_text(params, "password"))

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.user_service.authenticate(self.username, self.password)


@dataclass(frozen=True)
class UpdatePassword(Operation):
    name: ClassVar[str] = "password_update"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    username: str
    new_password: str

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "UpdatePassword":
        return cls(username=_text(params, "username"), new_password=_text(params, "new_password"))

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        services.user_service.update_password(self.username, self.new_password)
        return f"Password for user '{self.username}' updated successfully."


@dataclass(frozen=True)
class GetUserInfo(Operation):
    name: ClassVar[str] = "user_get_info"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.INSURER})

    username: str

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "GetUserInfo":
        return cls(username=_text(params, "username"))

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.user_service.get_info(self.username)


# Shop


@dataclass(frozen=True)
class CreateContract(Operation):
    name: ClassVar[str] = "contract_create"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.SHOP})

    contract: ContractCreate

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "CreateContract":
        start_date: datetime = parse_datetime(_require(params, "start_date"), "start_date")
        end_date: datetime = parse_datetime(_require(params, "end_date"), "end_date")
        return cls(
            contract=ContractCreate(
                id=_text(params, "uuid"),
                contract_type_id=_text(params, "contract_type_uuid"),
                username=_text(params, "username"),
                password=_text(params, "password"),
                profile=Profile(
                    first_name=_text(params, "first_name", default=""),
                    last_name=_text(params, "last_name", default=""),
                ),
                item=_item(params),
                start_date=start_date,
                end_date=end_date,
            )
        )

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        created = services.contract_service.create_contract(self.contract)
        if created.password is None:
            return "Contract created successfully."
        return {"username": created.username, "password": created.password}


@dataclass(frozen=True)
class CreateUser(Operation):
    name: ClassVar[str] = "user_create"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.SHOP})

    username: str
    password: str
    profile: Profile

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "CreateUser":
        return cls(
            username=_text(params, "username"),
            password=_text(params, "password"),
            profile=Profile(
                first_name=_text(params, "first_name"),
                last_name=_text(params, "last_name"),
            ),
        )

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.user_service.create_user(self.username, self.password, self.profile)


# Repair shop


@dataclass(frozen=True)
class ListRepairOrders(Operation):
    name: ClassVar[str] = "repair_order_ls"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.REPAIR_SHOP})

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.repair_service.list_pending()


@dataclass(frozen=True)
class CompleteRepairOrder(Operation):
    name: ClassVar[str] = "repair_order_complete"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.REPAIR_SHOP})

    repair_order_id: str

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "CompleteRepairOrder":
        return cls(repair_order_id=_text(params, "uuid"))

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        services.repair_service.complete(self.repair_order_id)
        return None


# Police


@dataclass(frozen=True)
class ListTheftClaims(Operation):
    name: ClassVar[str] = "theft_claim_ls"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.POLICE})

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.claim_service.list_theft_pending()


@dataclass(frozen=True)
class ProcessTheftClaim(Operation):
    name: ClassVar[str] = "theft_claim_process"
    roles: ClassVar[frozenset[Role]] = frozenset({Role.POLICE})

    claim_id: str
    contract_id: str
    confirmed: bool
    file_reference: str

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "ProcessTheftClaim":
        return cls(
            claim_id=_text(params, "uuid"),
            contract_id=_text(params, "contract_uuid"),
            confirmed=_flag(params, "is_theft"),
            file_reference=_text(params, "file_reference", default=""),
        )

    def execute(self, services: ServiceContainer, role: Role) -> Any:
        return services.claim_service.confirm_theft(
            self.claim_id,
            self.contract_id,
            self.confirmed,
            self.file_reference,
        )


OPERATIONS: dict[str, type[Operation]] = {
    operation.name: operation
    for operation in (
        ListContractTypes,
        CreateContractType,
        SetContractTypeActive,
        ListContracts,
        ListClaims,
        FileClaim,
        ProcessClaim,
        AuthenticateUser,
        UpdatePassword,
        GetUserInfo,
        CreateContract,
        CreateUser,
        ListRepairOrders,
        CompleteRepairOrder,
        ListTheftClaims,
        ProcessTheftClaim,
    )
}


def capabilities(role: Role) -> frozenset[str]:
    """Return the operation names role may invoke."""
    return frozenset(name for name, operation in OPERATIONS.items() if role in operation.roles)
