import logging
from typing import List
from uuid import UUID

from ciam.app.services.notifications import OtpSender, PushNotifier
from ciam.domain.entities import MfaMethod

logger = logging.getLogger(__name__)


class LoggingOtpSender(OtpSender):
    """Stand-in for an SMS/voice gateway. Logs the dispatch, never the code."""

    async def send(
        self,
        subject_id: UUID,
        transaction_id: UUID,
        method: MfaMethod,
        destination: str,
        code: str,
    ) -> None:
        logger.info(
            "OTP dispatched via %s to %s (subject=%s, transaction=%s)",
            method.value,
            destination,
            subject_id,
            transaction_id,
        )


class LoggingPushNotifier(PushNotifier):
    """Stand-in for a mobile push provider"""

    async def notify(self, subject_id: UUID, transaction_id: UUID, choices: List[int]) -> None:
        logger.info(
            "Push approval requested (subject=%s, transaction=%s, choices=%d)",
            subject_id,
            transaction_id,
            len(choices),
        )
