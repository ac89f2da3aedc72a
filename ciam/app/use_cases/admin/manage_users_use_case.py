"""
Use Case: Manage Users (admin)

Provision subjects with their MFA enrollment and clear lockouts.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

import bcrypt

from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import AuditCategory, AuditEvent, User, UserStatus
from ciam.libs.result import Error, Result, Return
from .dtos import CreateUserCommand, OtpDestination, UnlockUserResponse, UserResponse


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        status=user.status.value,
        roles=list(user.roles or []),
        push_enabled=user.push_enabled,
        otp_destinations=[OtpDestination(**d) for d in (user.otp_destinations or [])],
        created_at=user.created_at,
    )


class ManageUsersUseCase:
    """
    Business Rules:
    - Usernames are unique
    - Passwords are stored as bcrypt hashes (cost factor 12)
    - Unlocking clears both the password lock and the MFA lock
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self.clock = clock

    async def create_user(self, command: CreateUserCommand) -> Result[UserResponse]:
        async with self.uow:
            if await self.uow.users.get_by_username(command.username):
                return Return.err(
                    Error("USERNAME_ALREADY_EXISTS", "Username is already taken")
                )

            password_hash = bcrypt.hashpw(command.password.encode(), bcrypt.gensalt(12))
            user = User(
                username=command.username,
                email=command.email,
                given_name=command.given_name,
                family_name=command.family_name,
                password_hash=password_hash.decode(),
                roles=list(command.roles),
                otp_destinations=[d.model_dump() for d in command.otp_destinations],
                push_enabled=command.push_enabled,
                created_at=self.clock(),
            )
            user = await self.uow.users.create(user)

            audit = AuditEvent(
                subject_id=user.id,
                action="user_created",
                category=AuditCategory.admin,
                event_metadata={"username": user.username},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(_to_response(user))

    async def unlock_user(self, user_id: UUID) -> Result[UnlockUserResponse]:
        """Idempotent: unlocking an active user succeeds without changes"""
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            previous_status = user.status
            user.status = UserStatus.active
            user.failed_login_count = 0
            await self.uow.users.update(user)

            audit = AuditEvent(
                subject_id=user.id,
                action="user_unlocked",
                category=AuditCategory.admin,
                event_metadata={"previous_status": previous_status.value},
                created_at=self.clock(),
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

            return Return.ok(
                UnlockUserResponse(
                    id=str(user.id),
                    status=user.status.value,
                    previous_status=previous_status.value,
                )
            )
