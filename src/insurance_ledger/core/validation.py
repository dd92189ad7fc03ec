"""Input validation rules for contracts, claims and catalog entries."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from insurance_ledger.core.errors import InvalidInput

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{3,64}$")
MAX_AMOUNT = Decimal("1000000000")


def validate_required_text(value: str, field_name: str) -> str:
    """Validate non-empty text fields."""
    if not isinstance(value, str):
        raise InvalidInput(f"{field_name} must be text.")
    normalized = value.strip()
    if not normalized:
        raise InvalidInput(f"{field_name} is required.")
    return normalized


def validate_identifier(value: Any, field_name: str) -> str:
    """Validate a UUID identifier and return its canonical string form."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError) as error:
        raise InvalidInput(f"{field_name} must be a UUID.") from error


def validate_username(username: str) -> str:
    """Usernames are 3-64 characters of letters, digits and . _ @ -."""
    normalized = validate_required_text(username, "username")
    if not USERNAME_PATTERN.match(normalized):
        raise InvalidInput("username may only contain letters, digits and . _ @ -")
    return normalized


def validate_password(password: str) -> str:
    if not isinstance(password, str) or not password:
        raise InvalidInput("password is required.")
    return password


def validate_amount(value: Any, field_name: str, allow_zero: bool = True) -> Decimal:
    """Validate a money amount and return it as Decimal."""
    if isinstance(value, bool):
        raise InvalidInput(f"{field_name} must be a number.")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as error:
        raise InvalidInput(f"{field_name} must be a number.") from error
    if not amount.is_finite():
        raise InvalidInput(f"{field_name} must be a number.")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidInput(f"{field_name} must be positive.")
    if amount > MAX_AMOUNT:
        raise InvalidInput(f"{field_name} exceeds the upper limit ({MAX_AMOUNT:,}).")
    return amount


def validate_duration_bounds(min_days: int, max_days: int) -> tuple[int, int]:
    """Validate a contract type's duration window in days."""
    if min_days < 0:
        raise InvalidInput("min_duration_days must not be negative.")
    if max_days < min_days:
        raise InvalidInput("max_duration_days must not be lower than min_duration_days.")
    return min_days, max_days


def validate_contract_period(
    start_date: datetime,
    end_date: datetime,
    min_days: int,
    max_days: int,
) -> int:
    """Validate a contract period against its type and return the duration in days."""
    if end_date < start_date:
        raise InvalidInput("end_date must not be before start_date.")
    duration = (end_date - start_date).days
    if duration < min_days or duration > max_days:
        raise InvalidInput(
            f"Contract duration of {duration} days is outside {min_days}~{max_days} days."
        )
    return duration


def parse_datetime(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 date or datetime string into a naive datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as error:
            raise InvalidInput(f"{field_name} must be an ISO-8601 date.") from error
    else:
        raise InvalidInput(f"{field_name} must be an ISO-8601 date.")

    if parsed.tzinfo is not None:
        raise InvalidInput(f"{field_name} must not carry a UTC offset.")
    return parsed
