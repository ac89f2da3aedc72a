from abc import ABC, abstractmethod

from ciam.app.repositories.audit_event_repository import IAuditEventRepository
from ciam.app.repositories.auth_context_repository import IAuthContextRepository
from ciam.app.repositories.auth_transaction_repository import IAuthTransactionRepository
from ciam.app.repositories.compliance_acceptance_repository import (
    IComplianceAcceptanceRepository,
)
from ciam.app.repositories.compliance_document_repository import IComplianceDocumentRepository
from ciam.app.repositories.refresh_token_repository import IRefreshTokenRepository
from ciam.app.repositories.session_repository import ISessionRepository
from ciam.app.repositories.trusted_device_repository import ITrustedDeviceRepository
from ciam.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    auth_contexts: IAuthContextRepository
    auth_transactions: IAuthTransactionRepository
    sessions: ISessionRepository
    refresh_tokens: IRefreshTokenRepository
    trusted_devices: ITrustedDeviceRepository
    compliance_documents: IComplianceDocumentRepository
    compliance_acceptances: IComplianceAcceptanceRepository
    audit_events: IAuditEventRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
