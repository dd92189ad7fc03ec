"""Claim and repair order domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from insurance_ledger.core.errors import InvalidInput
from insurance_ledger.models.contract import Contract, Item

_LEGACY_CODES = {
    "N": "New",
    "J": "Rejected",
    "R": "Repair",
    "F": "Reimbursement",
    "P": "TheftConfirmed",
}


class ClaimStatus(str, Enum):
    NEW = "New"
    REJECTED = "Rejected"
    REPAIR = "Repair"
    REIMBURSEMENT = "Reimbursement"
    THEFT_CONFIRMED = "TheftConfirmed"

    @classmethod
    def parse(cls, value: str) -> "ClaimStatus":
        """Parse a status name (any case) or its single-letter legacy code."""
        text = str(value).strip()
        text = _LEGACY_CODES.get(text.upper(), text)
        for status in cls:
            if status.value.lower() == text.lower():
                return status
        raise InvalidInput(f"Unknown claim status: {value!r}")

    @property
    def is_terminal(self) -> bool:
        return self in (ClaimStatus.REJECTED, ClaimStatus.REIMBURSEMENT)


@dataclass
class ClaimCreate:
    """Input model for filing a claim."""

    contract_id: str
    date: datetime
    description: str
    is_theft: bool
    id: str | None = None


@dataclass
class Claim:
    id: str
    contract_id: str
    date: datetime
    description: str
    is_theft: bool
    status: ClaimStatus = ClaimStatus.NEW
    reimbursable: Decimal = Decimal("0")
    repaired: bool = False
    file_reference: str = ""


@dataclass
class RepairOrder:
    id: str
    claim_id: str
    contract_id: str
    item: Item
    ready: bool = False


@dataclass
class TheftClaimView:
    """A pending theft claim joined with its contract and owner, for police review."""

    claim_id: str
    contract_id: str
    item: Item
    description: str
    owner_name: str


@dataclass
class ContractWithClaims:
    contract: Contract
    claims: list[Claim] = field(default_factory=list)
