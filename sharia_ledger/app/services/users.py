from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from ..core.db import atomic, read_only
from ..core.errors import DuplicateUserError, UserNotFoundError
from ..models import UserCreate, UserModel, UserResponse, UserUpdate
from ..models.db import utcnow
from .repository import LedgerRepository


logger = logging.getLogger(__name__)

# Profile fields a client may reset to empty; the rest are required columns.
CLEARABLE_USER_FIELDS = frozenset({"phone_number", "address"})


def hash_password(password: str, salt: str) -> str:
    return hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1).hex()


def can_operate(user: UserModel) -> bool:
    """Whether the user may own and operate accounts."""
    return user.enabled and not user.locked and not user.deleted


class UserService:
    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)

    def _get_user(self, user_id: UUID) -> UserModel:
        user = self.repository.get_user(user_id)
        if user is None or user.deleted:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def _user_to_response(self, user: UserModel) -> UserResponse:
        return UserResponse(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            phone_number=user.phone_number,
            address=user.address,
            role=user.role,
            enabled=user.enabled,
            locked=user.locked,
            created_at=user.created_at,
        )

    def create_user(self, payload: UserCreate) -> UserResponse:
        logger.debug("user.create", extra={"username": payload.username})
        salt = secrets.token_hex(16)
        with atomic(self.session):
            if self.repository.username_exists(payload.username):
                raise DuplicateUserError("Username already exists")
            if self.repository.email_exists(payload.email):
                raise DuplicateUserError("Email already exists")

            user = self.repository.add_user(
                UserModel(
                    username=payload.username,
                    email=payload.email,
                    full_name=payload.full_name,
                    phone_number=payload.phone_number,
                    address=payload.address,
                    password_hash=hash_password(payload.password, salt),
                    password_salt=salt,
                )
            )
            response = self._user_to_response(user)
        logger.info("user.created", extra={"user_id": str(response.id)})
        return response

    def get_user(self, user_id: UUID) -> UserResponse:
        with read_only(self.session):
            return self._user_to_response(self._get_user(user_id))

    def list_users(self) -> list[UserResponse]:
        with read_only(self.session):
            return [self._user_to_response(user) for user in self.repository.list_users()]

    def update_user(self, user_id: UUID, payload: UserUpdate) -> UserResponse:
        changes = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_USER_FIELDS
        }
        with atomic(self.session):
            user = self._get_user(user_id)
            if "email" in changes and self.repository.email_exists(
                changes["email"], exclude_id=user.id
            ):
                raise DuplicateUserError("Email already exists")

            for field, value in changes.items():
                setattr(user, field, value)
            user.updated_at = utcnow()
            self.session.add(user)
            self.session.flush()
            response = self._user_to_response(user)
        logger.info(
            "user.updated",
            extra={"user_id": str(user_id), "fields": sorted(changes)},
        )
        return response

    def delete_user(self, user_id: UUID) -> None:
        with atomic(self.session):
            user = self._get_user(user_id)
            user.deleted = True
            user.updated_at = utcnow()
            self.session.add(user)
        logger.info("user.deleted", extra={"user_id": str(user_id)})
