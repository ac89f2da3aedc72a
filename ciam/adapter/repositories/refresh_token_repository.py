from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.app.repositories.refresh_token_repository import IRefreshTokenRepository
from ciam.domain.entities import RefreshToken


class RefreshTokenRepository(IRefreshTokenRepository):
    """RefreshToken repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_token_hash(self, token_hash: str) -> Optional[RefreshToken]:
        """Get refresh token record by SHA-256 hash"""
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, token: RefreshToken) -> RefreshToken:
        """Create a new refresh token record"""
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def revoke_if_active(self, token_id: UUID, now: datetime) -> bool:
        """Revoke the record only if no one else revoked it first"""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == token_id, RefreshToken.revoked == False)  # noqa: E712
            .values(revoked=True, revoked_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def revoke_all_for_session(self, session_id: UUID, now: datetime) -> int:
        """Revoke every non-revoked record of a session"""
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.session_id == session_id,
                RefreshToken.revoked == False,  # noqa: E712
            )
            .values(revoked=True, revoked_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def get_child(self, token_id: UUID) -> Optional[RefreshToken]:
        """Get the record issued when this one was rotated, if any"""
        stmt = select(RefreshToken).where(RefreshToken.parent_token_id == token_id)
        result = await self.session.exec(stmt)
        return result.first()
