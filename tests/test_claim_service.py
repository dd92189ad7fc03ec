"""Tests for the claim lifecycle engine."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from decimal import Decimal

import pytest

from insurance_ledger.core.errors import Conflict, InvalidInput, InvalidTransition, NotFound
from insurance_ledger.models.claim import ClaimCreate, ClaimStatus

FILED_AT = datetime(2025, 2, 1, 9, 30)


def file_claim(services, contract_id: str, is_theft: bool = False, description: str = "Cracked screen"):
    return services.claim_service.file(
        ClaimCreate(
            contract_id=contract_id,
            date=FILED_AT,
            description=description,
            is_theft=is_theft,
        )
    )


def test_file_creates_new_claim_and_indexes_it(services, make_contract) -> None:
    contract_id = make_contract()

    claim = file_claim(services, contract_id)

    assert claim.status is ClaimStatus.NEW
    assert claim.reimbursable == Decimal("0")
    assert claim.repaired is False
    assert services.contract_service.get(contract_id).claim_index == [claim.id]


def test_file_keeps_supplied_claim_id(services, make_contract) -> None:
    contract_id = make_contract()
    claim_id = str(uuid.uuid4())

    claim = services.claim_service.file(
        ClaimCreate(id=claim_id, contract_id=contract_id, date=FILED_AT, description="Dent", is_theft=False)
    )

    assert claim.id == claim_id
    with pytest.raises(Conflict):
        services.claim_service.file(
            ClaimCreate(id=claim_id, contract_id=contract_id, date=FILED_AT, description="Dent", is_theft=False)
        )
    assert services.contract_service.get(contract_id).claim_index == [claim_id]


def test_file_on_unknown_contract(services) -> None:
    with pytest.raises(NotFound):
        file_claim(services, str(uuid.uuid4()))


def test_file_requires_description(services, make_contract) -> None:
    with pytest.raises(InvalidInput):
        file_claim(services, make_contract(), description="  ")


def test_theft_claim_on_contract_without_theft_cover(services, make_contract) -> None:
    contract_id = make_contract(theft_insured=False)

    with pytest.raises(Conflict):
        file_claim(services, contract_id, is_theft=True)
    assert services.contract_service.get(contract_id).claim_index == []


def test_claim_index_matches_claims_after_many_calls(services, make_contract) -> None:
    first = make_contract()
    second = make_contract()
    filed = {first: [], second: []}
    for contract_id in (first, second, first, first, second):
        filed[contract_id].append(file_claim(services, contract_id).id)
    services.claim_service.process(filed[first][0], first, ClaimStatus.REJECTED)
    services.claim_service.process(filed[second][0], second, ClaimStatus.REIMBURSEMENT, Decimal("40"))

    for contract_id, claim_ids in filed.items():
        contract = services.contract_service.get(contract_id)
        assert contract.claim_index == claim_ids
        assert {claim.id for claim in services.claim_service.list() if claim.contract_id == contract_id} == set(
            claim_ids
        )


def test_repair_then_reimbursement_is_rejected(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)

    processed = services.claim_service.process(claim.id, contract_id, ClaimStatus.REPAIR)
    assert processed.status is ClaimStatus.REPAIR

    orders = services.repair_service.list_pending()
    assert len(orders) == 1
    assert orders[0].claim_id == claim.id
    assert orders[0].contract_id == contract_id
    assert orders[0].ready is False
    assert orders[0].item.serial_no == "FP5-0001"

    with pytest.raises(InvalidTransition):
        services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("100"))
    assert len(services.repair_service.list_pending()) == 1


def test_decided_non_theft_claim_can_still_be_rejected(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)
    services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("120"))

    rejected = services.claim_service.process(claim.id, contract_id, ClaimStatus.REJECTED)

    assert rejected.status is ClaimStatus.REJECTED
    assert rejected.reimbursable == Decimal("0")
    with pytest.raises(InvalidTransition):
        services.claim_service.process(claim.id, contract_id, ClaimStatus.REPAIR)


def test_non_theft_reimbursement_keeps_contract_live(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)

    processed = services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("250.50"))

    assert processed.reimbursable == Decimal("250.50")
    assert services.claim_service.get(claim.id, contract_id).reimbursable == Decimal("250.50")
    assert services.contract_service.get(contract_id).void is False


def test_reimbursement_requires_amount(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)

    with pytest.raises(InvalidInput):
        services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT)
    assert services.claim_service.get(claim.id, contract_id).status is ClaimStatus.NEW


def test_process_requires_matching_contract(services, make_contract) -> None:
    contract_id = make_contract()
    other_contract_id = make_contract()
    claim = file_claim(services, contract_id)

    with pytest.raises(NotFound):
        services.claim_service.process(claim.id, other_contract_id, ClaimStatus.REJECTED)


@pytest.mark.parametrize("target", [ClaimStatus.NEW, ClaimStatus.THEFT_CONFIRMED])
def test_process_rejects_non_decision_targets(services, make_contract, target) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)

    with pytest.raises(InvalidTransition):
        services.claim_service.process(claim.id, contract_id, target)


def test_theft_claim_flow_voids_contract(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id, is_theft=True, description="Stolen on the train")

    with pytest.raises(InvalidTransition):
        services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("500"))

    confirmed = services.claim_service.confirm_theft(claim.id, contract_id, True, "PR-1")
    assert confirmed.status is ClaimStatus.THEFT_CONFIRMED
    assert confirmed.file_reference == "PR-1"

    paid = services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("500"))
    assert paid.reimbursable == Decimal("500")
    assert services.contract_service.get(contract_id).void is True

    with pytest.raises(Conflict):
        file_claim(services, contract_id)


def test_void_stays_set_after_rejection(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id, is_theft=True)
    services.claim_service.confirm_theft(claim.id, contract_id, True, "PR-2")
    services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("500"))

    services.claim_service.process(claim.id, contract_id, ClaimStatus.REJECTED)

    assert services.contract_service.get(contract_id).void is True


def test_theft_claims_are_never_repaired(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id, is_theft=True)
    services.claim_service.confirm_theft(claim.id, contract_id, True, "PR-3")

    with pytest.raises(InvalidTransition):
        services.claim_service.process(claim.id, contract_id, ClaimStatus.REPAIR)
    assert services.repair_service.list_pending() == []


def test_new_theft_claim_may_be_rejected_by_insurer(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id, is_theft=True)

    rejected = services.claim_service.process(claim.id, contract_id, ClaimStatus.REJECTED)

    assert rejected.status is ClaimStatus.REJECTED
    with pytest.raises(InvalidTransition):
        services.claim_service.confirm_theft(claim.id, contract_id, True, "PR-4")


def test_police_rejected_theft_cannot_be_reimbursed(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id, is_theft=True)

    reviewed = services.claim_service.confirm_theft(claim.id, contract_id, False, "PR-5")
    assert reviewed.status is ClaimStatus.REJECTED
    assert reviewed.file_reference == "PR-5"

    with pytest.raises(InvalidTransition):
        services.claim_service.process(claim.id, contract_id, ClaimStatus.REIMBURSEMENT, Decimal("500"))
    assert services.contract_service.get(contract_id).void is False


def test_confirm_theft_rejects_non_theft_claims(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)

    with pytest.raises(InvalidTransition):
        services.claim_service.confirm_theft(claim.id, contract_id, True, "PR-6")
    with pytest.raises(NotFound):
        services.claim_service.confirm_theft(str(uuid.uuid4()), contract_id, True, "PR-6")


def test_list_filters_by_status(services, make_contract) -> None:
    contract_id = make_contract()
    kept = file_claim(services, contract_id)
    rejected = file_claim(services, contract_id)
    services.claim_service.process(rejected.id, contract_id, ClaimStatus.REJECTED)

    assert [claim.id for claim in services.claim_service.list(ClaimStatus.NEW)] == [kept.id]
    assert [claim.id for claim in services.claim_service.list(ClaimStatus.REJECTED)] == [rejected.id]
    assert len(services.claim_service.list()) == 2


def test_list_theft_pending_joins_contract_and_owner(services, make_contract) -> None:
    contract_id = make_contract()
    theft = file_claim(services, contract_id, is_theft=True, description="Bag snatched")
    file_claim(services, contract_id)
    decided = file_claim(services, contract_id, is_theft=True)
    services.claim_service.confirm_theft(decided.id, contract_id, True, "PR-7")

    pending = services.claim_service.list_theft_pending()

    assert len(pending) == 1
    assert pending[0].claim_id == theft.id
    assert pending[0].contract_id == contract_id
    assert pending[0].description == "Bag snatched"
    assert pending[0].owner_name == "Alice Martin"
    assert pending[0].item.brand == "Fairphone"


def test_list_theft_pending_surfaces_missing_contract(services, make_contract) -> None:
    contract_id = make_contract()
    file_claim(services, contract_id, is_theft=True)
    services.pool.execute("PRAGMA foreign_keys = OFF")
    services.pool.execute("DELETE FROM contracts WHERE id = ?", (contract_id,))

    with pytest.raises(NotFound):
        services.claim_service.list_theft_pending()


def test_transitions_are_audited(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)
    services.claim_service.process(claim.id, contract_id, ClaimStatus.REPAIR)

    logs = services.audit_repo.list_logs(entity="claim", entity_id=claim.id)
    assert [log["action"] for log in logs] == ["UPDATE", "CREATE"]


def test_concurrent_decisions_let_one_transition_through(services, make_contract) -> None:
    contract_id = make_contract()
    claim = file_claim(services, contract_id)
    targets = [ClaimStatus.REPAIR, ClaimStatus.REIMBURSEMENT] * 4
    barrier = threading.Barrier(len(targets))
    outcomes: list[str] = []

    def decide(target: ClaimStatus) -> None:
        barrier.wait()
        try:
            services.claim_service.process(claim.id, contract_id, target, Decimal("75"))
            outcomes.append("ok")
        except InvalidTransition:
            outcomes.append("refused")
        finally:
            services.pool.close_connection()

    workers = [threading.Thread(target=decide, args=(target,)) for target in targets]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert sorted(outcomes) == ["ok"] + ["refused"] * (len(targets) - 1)
    decided = services.claim_service.get(claim.id, contract_id)
    expected_orders = 1 if decided.status is ClaimStatus.REPAIR else 0
    assert len(services.repair_service.list_pending()) == expected_orders
    assert [log["action"] for log in services.audit_repo.list_logs(entity="claim", entity_id=claim.id)] == [
        "UPDATE",
        "CREATE",
    ]


def test_terminal_statuses() -> None:
    assert {status for status in ClaimStatus if status.is_terminal} == {
        ClaimStatus.REJECTED,
        ClaimStatus.REIMBURSEMENT,
    }
