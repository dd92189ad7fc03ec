"""Shared fixtures: a fresh SQLite ledger per test."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from insurance_ledger.core.config import AppConfig, DatabaseConfig, LoggingConfig, SecurityConfig
from insurance_ledger.core.container import ServiceContainer, wire_services
from insurance_ledger.models.catalog import ContractType
from insurance_ledger.models.contract import ContractCreate, Item, Profile
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.schema import initialize_schema

START = datetime(2024, 11, 17, 10, 0, 0)


def build_config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(
            path=str(tmp_path / "test.db"),
            key_env="LEDGER_DB_KEY",
            allow_sqlite_fallback=True,
        ),
        # Low scrypt cost keeps the suite fast.
        security=SecurityConfig(hash_n=16, hash_r=1, hash_p=1),
        logging=LoggingConfig(),
    )


@pytest.fixture()
def services(tmp_path, monkeypatch) -> ServiceContainer:
    monkeypatch.setattr("insurance_ledger.repositories.db_pool.SQLCIPHER_AVAILABLE", False)
    config = build_config(tmp_path)
    pool = ThreadLocalConnection(config)
    initialize_schema(pool)
    container = wire_services(config, pool)
    yield container
    pool.close_connection()


@pytest.fixture()
def make_contract_type(services):
    def _make(theft_insured: bool = True, active: bool = True, shop_type: str = "Electronics", **overrides) -> str:
        fields = dict(
            id=str(uuid.uuid4()),
            shop_type=shop_type,
            formula_per_day="price * 0.001",
            max_sum_insured=Decimal("5000"),
            theft_insured=theft_insured,
            description="Accidental damage cover",
            conditions="Excess 50",
            active=active,
            min_duration_days=30,
            max_duration_days=730,
        )
        fields.update(overrides)
        services.contract_type_service.create(ContractType(**fields))
        return fields["id"]

    return _make


def contract_request(
    contract_type_id: str,
    username: str = "alice",
    password: str = "s3cret",
    days: int = 365,
    price: str = "899.00",
    contract_id: str | None = None,
) -> ContractCreate:
    return ContractCreate(
        id=contract_id or str(uuid.uuid4()),
        contract_type_id=contract_type_id,
        username=username,
        password=password,
        profile=Profile(first_name="Alice", last_name="Martin"),
        item=Item(
            brand="Fairphone",
            model="5",
            price=Decimal(price),
            description="Smartphone",
            serial_no="FP5-0001",
        ),
        start_date=START,
        end_date=START + timedelta(days=days),
    )


@pytest.fixture()
def make_contract(services, make_contract_type):
    def _make(theft_insured: bool = True, **kwargs) -> str:
        contract_type_id = kwargs.pop("contract_type_id", None) or make_contract_type(theft_insured=theft_insured)
        created = services.contract_service.create_contract(contract_request(contract_type_id, **kwargs))
        return created.contract_id

    return _make
