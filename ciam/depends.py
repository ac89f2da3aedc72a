from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from ciam.adapter.services.notifications import LoggingOtpSender, LoggingPushNotifier
from ciam.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from ciam.api.error import ClientError
from ciam.app.services.notifications import OtpSender, PushNotifier
from ciam.app.services.token_service import TokenService
from ciam.app.use_cases.auth import AuthOrchestrator
from ciam.libs.result import Error

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer(auto_error=False)


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_otp_sender() -> OtpSender:
    return LoggingOtpSender()


def get_push_notifier() -> PushNotifier:
    return LoggingPushNotifier()


async def get_orchestrator(
    uow=Depends(get_unit_of_work),
    otp_sender: OtpSender = Depends(get_otp_sender),
    push_notifier: PushNotifier = Depends(get_push_notifier),
) -> AuthOrchestrator:
    return AuthOrchestrator(uow, otp_sender=otp_sender, push_notifier=push_notifier)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to extract and verify the access token from the Authorization header.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        Decoded JWT payload containing sub, sid and roles

    Raises:
        ClientError: 401 UNAUTHORIZED if the token is missing, invalid or expired
    """
    payload = None
    if credentials is not None:
        payload = TokenService(None).verify_access_token(credentials.credentials)

    if payload is None:
        raise ClientError(
            Error("UNAUTHORIZED", "Invalid or expired access token"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return payload
