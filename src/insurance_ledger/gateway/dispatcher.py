"""Operation-name keyed dispatch boundary."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from insurance_ledger.core.errors import InvalidInput, LedgerError, Unauthorized
from insurance_ledger.gateway.operations import OPERATIONS, Operation, Role
from insurance_ledger.models.claim import ContractWithClaims

if TYPE_CHECKING:
    from insurance_ledger.core.container import ServiceContainer

# Results name identifiers the way requests do.
WIRE_KEYS = {
    "id": "uuid",
    "claim_id": "claim_uuid",
    "contract_id": "contract_uuid",
    "contract_type_id": "contract_type_uuid",
}


def to_json_value(value: Any) -> Any:
    """Convert service results into JSON-compatible values.

    Money stays a decimal string so amounts never pass through float.
    """
    if isinstance(value, ContractWithClaims):
        flattened = to_json_value(value.contract)
        flattened["claims"] = to_json_value(value.claims)
        return flattened
    if is_dataclass(value) and not isinstance(value, type):
        return {
            WIRE_KEYS.get(key, key): to_json_value(item)
            for key, item in asdict(value).items()
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    return value


class Dispatcher:
    """Decodes a named operation, checks the caller's role and runs it."""

    def __init__(self, services: ServiceContainer):
        self._services = services

    @staticmethod
    def decode(role: Role, operation: str, parameters: dict[str, Any] | None) -> Operation:
        """Build the typed operation, rejecting unknown names and foreign roles."""
        operation_type = OPERATIONS.get(operation)
        if operation_type is None:
            raise InvalidInput(f"Invalid invoke function '{operation}'.")
        if role not in operation_type.roles:
            raise Unauthorized(f"Role '{role.value}' may not invoke '{operation}'.")
        if parameters is None:
            parameters = {}
        if not isinstance(parameters, dict):
            raise InvalidInput("parameters must be a JSON object.")
        return operation_type.from_params(parameters)

    def dispatch(self, role: Role | str, operation: str, parameters: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run one operation and return a success or structured failure payload."""
        try:
            caller = role if isinstance(role, Role) else Role.parse(role)
            command = self.decode(caller, operation, parameters)
            result = command.execute(self._services, caller)
        except LedgerError as error:
            logger.info("Operation {} failed: {} ({})", operation, error.kind, error.message)
            return {"ok": False, "error": error.to_dict()}

        logger.debug("Operation {} by {} succeeded", operation, caller.value)
        return {"ok": True, "result": to_json_value(result)}

    def dispatch_json(self, role: Role | str, request: str) -> str:
        """Handle a ``{"operation": ..., "parameters": {...}}`` JSON request."""
        try:
            payload = json.loads(request)
        except json.JSONDecodeError as error:
            return json.dumps({"ok": False, "error": InvalidInput(f"Malformed JSON: {error.msg}").to_dict()})
        if not isinstance(payload, dict) or not isinstance(payload.get("operation"), str):
            return json.dumps({"ok": False, "error": InvalidInput("operation is required.").to_dict()})

        response = self.dispatch(role, payload["operation"], payload.get("parameters"))
        return json.dumps(response, ensure_ascii=False)
