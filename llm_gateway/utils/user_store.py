"""File-backed user accounts.

Users live in a single JSON array that is rewritten in full on every change.
A process-local lock serialises all reads and writes.
"""

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from .security import hash_password, validate_password_strength, verify_password

logger = logging.getLogger(__name__)


class UserStoreError(RuntimeError):
    """The user file could not be read or written."""


class UserExistsError(ValueError):
    """A user with the same email or username is already registered."""


class UserNotFoundError(LookupError):
    """No user with the given id exists."""


class InvalidCredentialsError(ValueError):
    """A supplied password did not match."""


class PasswordMismatchError(ValueError):
    """New password and its confirmation differ."""


class PasswordValidationError(ValueError):
    """A new password does not satisfy the strength rules."""

    def __init__(self, errors: List[str]):
        super().__init__(f"Password validation failed: {', '.join(errors)}")
        self.errors = errors


class AccountProtectedError(PermissionError):
    """The account may not be removed."""


class User(BaseModel):
    """Stored user record."""

    id: str
    email: str
    username: str
    password_hash: str
    role: str = "user"
    created_at: str
    last_login: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def public_dict(self) -> dict:
        return self.model_dump(exclude={"password_hash"})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserStore:
    """CRUD operations over the JSON user file."""

    def __init__(self, path: str, bcrypt_rounds: int = 12):
        self.path = Path(path)
        self.bcrypt_rounds = bcrypt_rounds
        self._lock = threading.Lock()

    def _load(self) -> List[User]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading users from {self.path}: {e}")
            raise UserStoreError(f"Failed to load user data: {e}") from e
        return [User(**record) for record in records]

    def _save(self, users: List[User]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump([user.model_dump() for user in users], f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Error saving users to {self.path}: {e}")
            raise UserStoreError("Failed to save user data") from e

    @staticmethod
    def _find(users: List[User], user_id: str) -> User:
        for user in users:
            if user.id == user_id:
                return user
        raise UserNotFoundError("User not found")

    def create_user(self, email: str, username: str, password: str, role: str = "user") -> User:
        """Register a new user.

        Raises:
            UserExistsError: If email or username is taken
        """
        email = email.strip().lower()
        password_hash = hash_password(password, self.bcrypt_rounds)

        with self._lock:
            users = self._load()
            if any(u.email == email or u.username == username for u in users):
                raise UserExistsError("User with this email or username already exists")

            user = User(
                id=uuid.uuid4().hex,
                email=email,
                username=username,
                password_hash=password_hash,
                role=role,
                created_at=_now()
            )
            users.append(user)
            self._save(users)

        logger.info(f"Registered user: {user.username} ({user.email})")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Verify credentials and record the login time.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        email = email.strip().lower()
        with self._lock:
            users = self._load()
            user = next((u for u in users if u.email == email), None)
            if user is None or not verify_password(password, user.password_hash):
                raise InvalidCredentialsError("Login failed")

            user.last_login = _now()
            self._save(users)
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self._load() if u.id == user_id), None)

    def list_users(self) -> List[User]:
        with self._lock:
            return self._load()

    def change_password(self, user_id: str, current_password: str, new_password: str, confirm_password: str) -> None:
        if new_password != confirm_password:
            raise PasswordMismatchError("New password and confirmation do not match")

        is_valid, errors = validate_password_strength(new_password)
        if not is_valid:
            raise PasswordValidationError(errors)

        with self._lock:
            users = self._load()
            user = self._find(users, user_id)
            if not verify_password(current_password, user.password_hash):
                raise InvalidCredentialsError("Current password is incorrect")

            user.password_hash = hash_password(new_password, self.bcrypt_rounds)
            self._save(users)

        logger.info(f"Password changed for user: {user.username} ({user.email})")

    def delete_user(self, user_id: str, password: str) -> None:
        with self._lock:
            users = self._load()
            user = self._find(users, user_id)
            if user.is_admin:
                raise AccountProtectedError("Admin accounts cannot be deleted")
            if not verify_password(password, user.password_hash):
                raise InvalidCredentialsError("Password is incorrect")

            users.remove(user)
            self._save(users)

        logger.info(f"User account deleted: {user.username} ({user.email})")

    def ensure_admin(self, email: str, username: str, password: str) -> bool:
        """Create the default admin unless an admin already exists.

        Returns:
            True if an admin account was created
        """
        with self._lock:
            users = self._load()
            if any(u.is_admin for u in users):
                return False

            users.append(User(
                id=f"admin-{uuid.uuid4().hex[:12]}",
                email=email.lower(),
                username=username,
                password_hash=hash_password(password, self.bcrypt_rounds),
                role="admin",
                created_at=_now()
            ))
            self._save(users)

        logger.warning(f"Default admin created: {username} ({email}). Change this password in production!")
        return True
