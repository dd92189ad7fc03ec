"""User repository."""

from __future__ import annotations

import json
import sqlite3

from insurance_ledger.core.errors import Conflict
from insurance_ledger.models.contract import User
from insurance_ledger.repositories.db_pool import ThreadLocalConnection


class UserRepository:
    """Handles user persistence, including the contract index array."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    @staticmethod
    def _to_model(row: sqlite3.Row) -> User:
        return User(
            username=row["username"],
            password_digest=row["password_digest"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            contract_index=list(json.loads(row["contract_index"] or "[]")),
        )

    def create_user(self, user: User) -> None:
        """Insert user; an existing username raises Conflict."""
        try:
            self._pool.execute(
                """
                INSERT INTO users (username, password_digest, first_name, last_name, contract_index)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user.username,
                    user.password_digest,
                    user.first_name,
                    user.last_name,
                    json.dumps(user.contract_index),
                ),
            )
        except sqlite3.IntegrityError as error:
            if "users.username" not in str(error):
                raise
            raise Conflict(f"User {user.username} already exists.") from error

    def get_user(self, username: str) -> User | None:
        row = self._pool.fetchone(
            """
            SELECT username, password_digest, first_name, last_name, contract_index
            FROM users
            WHERE username = ?
            """,
            (username,),
        )
        return self._to_model(row) if row else None

    def list_users(self) -> list[User]:
        rows = self._pool.fetchall(
            """
            SELECT username, password_digest, first_name, last_name, contract_index
            FROM users
            ORDER BY username
            """
        )
        return [self._to_model(row) for row in rows]

    def update_password(self, username: str, password_digest: str) -> int:
        cursor = self._pool.execute(
            "UPDATE users SET password_digest = ? WHERE username = ?",
            (password_digest, username),
        )
        return cursor.rowcount

    def set_contract_index(self, username: str, contract_index: list[str]) -> int:
        """Overwrite the persisted contract index and return affected row count."""
        cursor = self._pool.execute(
            "UPDATE users SET contract_index = ? WHERE username = ?",
            (json.dumps(contract_index), username),
        )
        return cursor.rowcount

    def contract_ids_for(self, username: str) -> list[str]:
        """Derive the contract index from the contracts table in creation order."""
        rows = self._pool.fetchall(
            "SELECT id FROM contracts WHERE username = ? ORDER BY seq",
            (username,),
        )
        return [row["id"] for row in rows]
