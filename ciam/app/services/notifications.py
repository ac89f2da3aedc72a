"""
Outbound challenge delivery.

SMS/voice and push delivery are collaborators injected into the MFA
transaction manager. The adapter layer ships logging implementations;
tests inject recording fakes.
"""

from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from ciam.domain.entities import MfaMethod


class OtpSender(ABC):
    """Delivers a one-time code over SMS or voice"""

    @abstractmethod
    async def send(
        self,
        subject_id: UUID,
        transaction_id: UUID,
        method: MfaMethod,
        destination: str,
        code: str,
    ) -> None:
        pass


class PushNotifier(ABC):
    """Asks the subject's registered mobile app to approve a login"""

    @abstractmethod
    async def notify(
        self,
        subject_id: UUID,
        transaction_id: UUID,
        choices: List[int],
    ) -> None:
        pass
