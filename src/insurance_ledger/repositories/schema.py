"""Database schema management."""

from __future__ import annotations

from insurance_ledger.repositories.db_pool import ThreadLocalConnection


def initialize_schema(pool: ThreadLocalConnection) -> None:
    """Create required tables and indexes if they do not exist."""
    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS contract_types (
            id TEXT PRIMARY KEY,
            shop_type TEXT NOT NULL,
            formula_per_day TEXT NOT NULL,
            max_sum_insured TEXT NOT NULL,
            theft_insured INTEGER NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            conditions TEXT NOT NULL DEFAULT '',
            active INTEGER NOT NULL,
            min_duration_days INTEGER NOT NULL,
            max_duration_days INTEGER NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            username TEXT PRIMARY KEY,
            password_digest TEXT NOT NULL,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            contract_index TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS contracts (
            id TEXT PRIMARY KEY,
            username TEXT NOT NULL,
            item TEXT NOT NULL,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            void INTEGER NOT NULL DEFAULT 0,
            contract_type_id TEXT NOT NULL,
            claim_index TEXT NOT NULL DEFAULT '[]',
            seq INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (username) REFERENCES users(username) ON DELETE RESTRICT,
            FOREIGN KEY (contract_type_id) REFERENCES contract_types(id) ON DELETE RESTRICT
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS claims (
            id TEXT PRIMARY KEY,
            contract_id TEXT NOT NULL,
            date TEXT NOT NULL,
            description TEXT NOT NULL,
            is_theft INTEGER NOT NULL,
            status TEXT NOT NULL,
            reimbursable TEXT NOT NULL DEFAULT '0',
            repaired INTEGER NOT NULL DEFAULT 0,
            file_reference TEXT NOT NULL DEFAULT '',
            seq INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (contract_id) REFERENCES contracts(id) ON DELETE RESTRICT
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS repair_orders (
            id TEXT PRIMARY KEY,
            claim_id TEXT NOT NULL UNIQUE,
            contract_id TEXT NOT NULL,
            item TEXT NOT NULL,
            ready INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (claim_id) REFERENCES claims(id) ON DELETE RESTRICT,
            FOREIGN KEY (contract_id) REFERENCES contracts(id) ON DELETE RESTRICT
        )
        """
    )

    pool.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            action TEXT NOT NULL,
            entity TEXT NOT NULL,
            entity_id TEXT,
            detail TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    pool.execute("CREATE INDEX IF NOT EXISTS idx_contract_types_shop_type ON contract_types(shop_type)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_contracts_username ON contracts(username, seq)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_claims_contract ON claims(contract_id, seq)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_claims_theft_status ON claims(is_theft, status)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_repair_orders_ready ON repair_orders(ready)")
    pool.execute("CREATE INDEX IF NOT EXISTS idx_audit_logs_created_at ON audit_logs(created_at)")
