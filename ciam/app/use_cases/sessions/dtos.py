from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class SessionInfo(BaseModel):
    """One active session as shown to its owner"""

    session_id: str
    device_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    last_seen_at: datetime
    expires_at: datetime
    current: bool


class SessionListResponse(BaseModel):
    sessions: List[SessionInfo]


class RevokeSessionResponse(BaseModel):
    session_id: str
    revoked: bool


class RevokeOtherSessionsResponse(BaseModel):
    kept_session_id: str
    revoked_count: int
