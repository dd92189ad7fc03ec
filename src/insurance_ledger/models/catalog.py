"""Contract type catalog models."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class ContractType:
    """Coverage template a contract is issued against.

    ``formula_per_day`` is kept as text; premium evaluation happens outside
    the ledger.
    """

    id: str
    shop_type: str
    formula_per_day: str
    max_sum_insured: Decimal
    theft_insured: bool
    description: str
    conditions: str
    active: bool
    min_duration_days: int
    max_duration_days: int
