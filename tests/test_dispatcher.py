"""End-to-end tests through the role-gated dispatcher."""

from __future__ import annotations

import json
import uuid

import pytest

from insurance_ledger.gateway.dispatcher import Dispatcher
from insurance_ledger.gateway.operations import OPERATIONS, Role, capabilities

ITEM = {
    "brand": "Trek",
    "model": "FX 3",
    "price": 1200,
    "description": "Hybrid bike",
    "serial_no": "WTU123",
}


@pytest.fixture()
def dispatcher(services) -> Dispatcher:
    return Dispatcher(services)


@pytest.fixture()
def contract_type_id(dispatcher) -> str:
    type_id = str(uuid.uuid4())
    response = dispatcher.dispatch(
        "insurer",
        "contract_type_create",
        {
            "uuid": type_id,
            "shop_type": "Bicycles",
            "formula_per_day": "price * 0.002",
            "max_sum_insured": 3000,
            "theft_insured": True,
            "description": "Theft and damage",
            "conditions": "Lock required",
            "active": True,
            "min_duration_days": 0,
            "max_duration_days": 365,
        },
    )
    assert response == {"ok": True, "result": None}
    return type_id


def create_contract(dispatcher, contract_type_id: str, password: str = "pw", username: str = "zoe") -> dict:
    return dispatcher.dispatch(
        "shop",
        "contract_create",
        {
            "uuid": str(uuid.uuid4()),
            "contract_type_uuid": contract_type_id,
            "username": username,
            "password": password,
            "first_name": "Zoe",
            "last_name": "Ng",
            "item": ITEM,
            "start_date": "2025-01-01T00:00:00",
            "end_date": "2025-12-31T00:00:00",
        },
    )


def contract_id_of(dispatcher, username: str = "zoe") -> str:
    listed = dispatcher.dispatch("insurer", "contract_ls", {"username": username})
    return listed["result"][-1]["uuid"]


def test_every_operation_belongs_to_a_role() -> None:
    covered = set().union(*(capabilities(role) for role in Role))
    assert covered == set(OPERATIONS)
    assert capabilities(Role.POLICE) == {"theft_claim_ls", "theft_claim_process"}
    assert capabilities(Role.REPAIR_SHOP) == {"repair_order_ls", "repair_order_complete"}


def test_role_outside_capability_set_is_unauthorized(dispatcher) -> None:
    response = dispatcher.dispatch("police", "claim_process", {})
    assert response["ok"] is False
    assert response["error"]["kind"] == "Unauthorized"


def test_unknown_operation_and_role(dispatcher) -> None:
    assert dispatcher.dispatch("insurer", "claim_delete", {})["error"]["kind"] == "InvalidInput"
    assert dispatcher.dispatch("customer", "claim_ls", {})["error"]["kind"] == "InvalidInput"


def test_missing_parameter_is_invalid_input(dispatcher) -> None:
    response = dispatcher.dispatch("insurer", "claim_file", {"contract_uuid": str(uuid.uuid4())})
    assert response["error"]["kind"] == "InvalidInput"


def test_credentials_echoed_once_then_unauthorized(dispatcher, contract_type_id) -> None:
    first = create_contract(dispatcher, contract_type_id)
    assert first == {"ok": True, "result": {"username": "zoe", "password": "pw"}}

    again = create_contract(dispatcher, contract_type_id)
    assert again == {"ok": True, "result": "Contract created successfully."}

    wrong = create_contract(dispatcher, contract_type_id, password="guess")
    assert wrong["ok"] is False
    assert wrong["error"]["kind"] == "Unauthorized"


def test_shop_only_sees_active_contract_types(dispatcher, contract_type_id) -> None:
    dispatcher.dispatch("insurer", "contract_type_set_active", {"uuid": contract_type_id, "active": False})

    shop_view = dispatcher.dispatch("shop", "contract_type_ls", {})
    insurer_view = dispatcher.dispatch("insurer", "contract_type_ls", {})

    assert shop_view["result"] == []
    assert [item["uuid"] for item in insurer_view["result"]] == [contract_type_id]
    assert insurer_view["result"][0]["max_sum_insured"] == "3000"


def test_repair_scenario(dispatcher, contract_type_id) -> None:
    create_contract(dispatcher, contract_type_id)
    contract_id = contract_id_of(dispatcher)
    claim_id = str(uuid.uuid4())

    filed = dispatcher.dispatch(
        "insurer",
        "claim_file",
        {
            "uuid": claim_id,
            "contract_uuid": contract_id,
            "date": "2025-03-03T12:00:00",
            "description": "Bent wheel",
            "is_theft": False,
        },
    )
    assert filed["result"]["status"] == "New"

    repair = dispatcher.dispatch(
        "insurer", "claim_process", {"uuid": claim_id, "contract_uuid": contract_id, "status": "Repair"}
    )
    assert repair["result"]["status"] == "Repair"

    orders = dispatcher.dispatch("repair_shop", "repair_order_ls")["result"]
    assert len(orders) == 1
    assert orders[0]["item"]["serial_no"] == "WTU123"
    assert orders[0]["ready"] is False
    assert orders[0]["claim_uuid"] == claim_id
    assert orders[0]["contract_uuid"] == contract_id
    assert "id" not in orders[0]

    refused = dispatcher.dispatch(
        "insurer",
        "claim_process",
        {"uuid": claim_id, "contract_uuid": contract_id, "status": "Reimbursement", "reimbursable": 100},
    )
    assert refused["error"]["kind"] == "InvalidTransition"

    done = dispatcher.dispatch("repair_shop", "repair_order_complete", {"uuid": orders[0]["uuid"]})
    assert done["ok"] is True

    contracts = dispatcher.dispatch("insurer", "contract_ls", {"username": "zoe"})["result"]
    assert contracts[0]["claim_index"] == [claim_id]
    assert contracts[0]["claims"][0]["repaired"] is True


def test_theft_scenario(dispatcher, contract_type_id) -> None:
    create_contract(dispatcher, contract_type_id)
    contract_id = contract_id_of(dispatcher)
    claim = dispatcher.dispatch(
        "insurer",
        "claim_file",
        {
            "contract_uuid": contract_id,
            "date": "2025-04-04",
            "description": "Stolen outside the station",
            "is_theft": True,
        },
    )["result"]
    keys = {"uuid": claim["uuid"], "contract_uuid": contract_id}

    early = dispatcher.dispatch("insurer", "claim_process", {**keys, "status": "Reimbursement", "reimbursable": 500})
    assert early["error"]["kind"] == "InvalidTransition"

    pending = dispatcher.dispatch("police", "theft_claim_ls")["result"]
    assert pending[0]["claim_uuid"] == claim["uuid"]
    assert pending[0]["owner_name"] == "Zoe Ng"

    confirmed = dispatcher.dispatch(
        "police", "theft_claim_process", {**keys, "is_theft": True, "file_reference": "PR-1"}
    )
    assert confirmed["result"]["status"] == "TheftConfirmed"

    paid = dispatcher.dispatch("insurer", "claim_process", {**keys, "status": "F", "reimbursable": 500})
    assert paid["result"]["status"] == "Reimbursement"
    assert paid["result"]["reimbursable"] == "500"

    contracts = dispatcher.dispatch("insurer", "contract_ls", {})["result"]
    assert contracts[0]["void"] is True


def test_claim_ls_with_unrecognised_status_lists_everything(dispatcher, contract_type_id) -> None:
    create_contract(dispatcher, contract_type_id)
    contract_id = contract_id_of(dispatcher)
    dispatcher.dispatch(
        "insurer",
        "claim_file",
        {"contract_uuid": contract_id, "date": "2025-05-05", "description": "Scratch", "is_theft": False},
    )

    assert len(dispatcher.dispatch("insurer", "claim_ls", {"status": "whatever"})["result"]) == 1
    assert len(dispatcher.dispatch("insurer", "claim_ls", {"status": "N"})["result"]) == 1
    assert dispatcher.dispatch("insurer", "claim_ls", {"status": "Rejected"})["result"] == []


def test_user_operations(dispatcher) -> None:
    created = dispatcher.dispatch(
        "shop", "user_create", {"username": "yuki", "password": "pw", "first_name": "Yuki", "last_name": "Sato"}
    )
    assert created["result"] == {"username": "yuki", "password": "pw"}

    assert dispatcher.dispatch("insurer", "user_authenticate", {"username": "yuki", "password": "pw"})["result"] is True
    assert dispatcher.dispatch("insurer", "user_authenticate", {"username": "nobody", "password": "pw"})["result"] is False

    updated = dispatcher.dispatch("insurer", "password_update", {"username": "yuki", "new_password": "pw2"})
    assert updated["ok"] is True

    info = dispatcher.dispatch("insurer", "user_get_info", {"username": "yuki"})["result"]
    assert info == {"username": "yuki", "first_name": "Yuki", "last_name": "Sato"}
    assert dispatcher.dispatch("insurer", "user_get_info", {"username": "nobody"})["result"] is None


def test_dispatch_json_round_trip(dispatcher) -> None:
    raw = dispatcher.dispatch_json("repair_shop", json.dumps({"operation": "repair_order_ls"}))
    assert json.loads(raw) == {"ok": True, "result": []}

    broken = json.loads(dispatcher.dispatch_json("repair_shop", "{not json"))
    assert broken["error"]["kind"] == "InvalidInput"


def test_contract_dates_with_utc_offset_are_invalid_input(dispatcher, contract_type_id) -> None:
    response = dispatcher.dispatch(
        "shop",
        "contract_create",
        {
            "uuid": str(uuid.uuid4()),
            "contract_type_uuid": contract_type_id,
            "username": "zoe",
            "password": "pw",
            "first_name": "Zoe",
            "last_name": "Ng",
            "item": ITEM,
            "start_date": "2025-01-01T00:00:00+00:00",
            "end_date": "2025-06-01T00:00:00",
        },
    )

    assert response["ok"] is False
    assert response["error"]["kind"] == "InvalidInput"
    assert dispatcher.dispatch("insurer", "contract_ls", {})["result"] == []
