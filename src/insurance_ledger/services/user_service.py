"""User credential service."""

from __future__ import annotations

from loguru import logger

from insurance_ledger.core.crypto import PasswordHasher
from insurance_ledger.core.errors import NotFound
from insurance_ledger.core.validation import (
    validate_password,
    validate_required_text,
    validate_username,
)
from insurance_ledger.models.contract import Profile, User, UserCredentials, UserInfo
from insurance_ledger.repositories.audit_repository import AuditRepository
from insurance_ledger.repositories.db_pool import ThreadLocalConnection
from insurance_ledger.repositories.user_repository import UserRepository


class UserService:
    """Coordinates user registration and credential checks."""

    def __init__(
        self,
        pool: ThreadLocalConnection,
        user_repo: UserRepository,
        audit_repo: AuditRepository,
        hasher: PasswordHasher,
    ):
        self._pool = pool
        self._user_repo = user_repo
        self._audit_repo = audit_repo
        self._hasher = hasher

    def register(self, username: str, password: str, profile: Profile) -> User:
        """Insert a new user with an empty contract index.

        Joins the caller's transaction when one is open.
        """
        user = User(
            username=validate_username(username),
            password_digest=self._hasher.hash(validate_password(password)),
            first_name=validate_required_text(profile.first_name, "first_name"),
            last_name=validate_required_text(profile.last_name, "last_name"),
        )
        with self._pool.transaction():
            self._user_repo.create_user(user)
            self._audit_repo.add_log(
                "CREATE",
                "user",
                user.username,
                {"event": "user created", "first_name": user.first_name, "last_name": user.last_name},
            )
        logger.info("User {} registered", user.username)
        return user

    def create_user(self, username: str, password: str, profile: Profile) -> UserCredentials:
        """Register a user and echo the plaintext credentials once."""
        user = self.register(username, password, profile)
        return UserCredentials(username=user.username, password=password)

    def verify(self, user: User, password: str) -> bool:
        return self._hasher.verify(password, user.password_digest)

    def authenticate(self, username: str, password: str) -> bool:
        """Return whether the credentials match. Unknown users are False."""
        user = self._user_repo.get_user(username)
        if user is None:
            return False
        return self.verify(user, password)

    def update_password(self, username: str, new_password: str) -> None:
        digest = self._hasher.hash(validate_password(new_password))
        with self._pool.transaction():
            updated = self._user_repo.update_password(username, digest)
            if updated == 0:
                raise NotFound(f"Username {username} does not exist.")
            self._audit_repo.add_log("UPDATE", "user", username, {"event": "password updated"})
        logger.info("Password updated for user {}", username)

    def get_info(self, username: str) -> UserInfo | None:
        user = self._user_repo.get_user(username)
        if user is None:
            return None
        return UserInfo(username=user.username, first_name=user.first_name, last_name=user.last_name)
