"""Contract and user domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass
class Item:
    """Insured merchandise, embedded in contracts and repair orders."""

    brand: str
    model: str
    price: Decimal
    description: str
    serial_no: str

    def to_record(self) -> dict[str, Any]:
        return {
            "brand": self.brand,
            "model": self.model,
            "price": str(self.price),
            "description": self.description,
            "serial_no": self.serial_no,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Item":
        return cls(
            brand=record["brand"],
            model=record["model"],
            price=Decimal(str(record["price"])),
            description=record.get("description", ""),
            serial_no=record["serial_no"],
        )


@dataclass
class Profile:
    first_name: str
    last_name: str


@dataclass
class ContractCreate:
    """Input model for issuing a contract in a shop."""

    id: str
    contract_type_id: str
    username: str
    password: str
    profile: Profile
    item: Item
    start_date: datetime
    end_date: datetime


@dataclass
class Contract:
    id: str
    username: str
    item: Item
    start_date: datetime
    end_date: datetime
    void: bool
    contract_type_id: str
    claim_index: list[str] = field(default_factory=list)


@dataclass
class ContractCreated:
    """Result of contract issuance.

    ``password`` carries the plaintext password only when the call created
    the user; it cannot be recovered afterwards.
    """

    contract_id: str
    username: str
    password: str | None = None


@dataclass
class User:
    username: str
    password_digest: str
    first_name: str
    last_name: str
    contract_index: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class UserInfo:
    """Public view of a user, without credentials."""

    username: str
    first_name: str
    last_name: str


@dataclass
class UserCredentials:
    """One-time echo of freshly issued credentials."""

    username: str
    password: str
