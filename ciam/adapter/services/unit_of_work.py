from sqlmodel.ext.asyncio.session import AsyncSession

from ciam.adapter.repositories.audit_event_repository import AuditEventRepository
from ciam.adapter.repositories.auth_context_repository import AuthContextRepository
from ciam.adapter.repositories.auth_transaction_repository import AuthTransactionRepository
from ciam.adapter.repositories.compliance_acceptance_repository import (
    ComplianceAcceptanceRepository,
)
from ciam.adapter.repositories.compliance_document_repository import ComplianceDocumentRepository
from ciam.adapter.repositories.refresh_token_repository import RefreshTokenRepository
from ciam.adapter.repositories.session_repository import SessionRepository
from ciam.adapter.repositories.trusted_device_repository import TrustedDeviceRepository
from ciam.adapter.repositories.user_repository import UserRepository
from ciam.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.users = UserRepository(self.session)
        self.auth_contexts = AuthContextRepository(self.session)
        self.auth_transactions = AuthTransactionRepository(self.session)
        self.sessions = SessionRepository(self.session)
        self.refresh_tokens = RefreshTokenRepository(self.session)
        self.trusted_devices = TrustedDeviceRepository(self.session)
        self.compliance_documents = ComplianceDocumentRepository(self.session)
        self.compliance_acceptances = ComplianceAcceptanceRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        return self

    async def __aexit__(self, *args):
        # Anything not committed by the use case is discarded
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
