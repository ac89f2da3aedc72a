from config import ApplicationConfig
from ciam.app.services.notifications import OtpSender, PushNotifier

ADMIN_HEADERS = {"X-Admin-API-Key": ApplicationConfig.ADMIN_API_KEY}
DEVICE_CALLBACK_HEADERS = {"X-Device-Callback-Key": ApplicationConfig.DEVICE_CALLBACK_API_KEY}
PASSWORD = "SecurePass123!"


class RecordingOtpSender(OtpSender):
    """Keeps every code it is asked to deliver, keyed by transaction id"""

    def __init__(self):
        self.codes = {}

    async def send(self, subject_id, transaction_id, method, destination, code):
        self.codes[str(transaction_id)] = code


class RecordingPushNotifier(PushNotifier):
    def __init__(self):
        self.choices = {}

    async def notify(self, subject_id, transaction_id, choices):
        self.choices[str(transaction_id)] = list(choices)


def bearer(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


def wrong_code(code: str) -> str:
    """A code of the same length that is guaranteed not to match"""
    return "".join("1" if c == "0" else "0" for c in code)
