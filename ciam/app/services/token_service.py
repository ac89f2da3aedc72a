"""
Token Service

Issues, validates, rotates and revokes tokens.

Access and identity tokens are signed JWTs (python-jose). Refresh tokens are
opaque random strings; only their SHA-256 hash is persisted, one row per
issued token, chained through parent_token_id on rotation.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID, uuid4

from jose import JWTError, jwk, jwt

from config import ApplicationConfig
from ciam.app.services.dtos import IntrospectionResponse, SubjectClaims, TokenSet
from ciam.app.services.unit_of_work import UnitOfWork
from ciam.domain.base import utcnow
from ciam.domain.entities import RefreshToken, UserStatus
from ciam.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)


def hash_refresh_token(token: str) -> str:
    """SHA-256 hex digest used as the lookup key of a refresh token"""
    return hashlib.sha256(token.encode()).hexdigest()


def _timestamp(value: datetime) -> int:
    return int((value - datetime(1970, 1, 1)).total_seconds())


class TokenService:
    """
    Token lifecycle on top of the caller's Unit of Work.

    Business Rules:
    - Rotation is compare-and-revoke: only the caller whose conditional
      UPDATE revoked the old row gets a new token set
    - At most one active refresh token per session
    - Presenting an already revoked refresh token is reuse; the whole session
      chain is revoked when REVOKE_SESSION_ON_REFRESH_REUSE is on
    - A token rotated less than REFRESH_REUSE_GRACE_SECONDS ago is a duplicate
      request that lost the race: rejected, chain left intact
    - Access tokens are not individually revocable, they die at exp
    """

    def __init__(
        self,
        uow: Optional[UnitOfWork],
        config=ApplicationConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.config = config
        self.clock = clock

    # ------------------------------------------------------------------
    # Signing keys
    # ------------------------------------------------------------------

    @property
    def _asymmetric(self) -> bool:
        return not self.config.JWT_ALGORITHM.startswith("HS")

    def _signing_key(self) -> str:
        if self._asymmetric:
            return self.config.JWT_PRIVATE_KEY
        return self.config.JWT_SECRET

    def _verification_key(self) -> str:
        if self._asymmetric:
            return self.config.JWT_PUBLIC_KEY
        return self.config.JWT_SECRET

    def _encode(self, claims: dict) -> str:
        return jwt.encode(
            claims,
            self._signing_key(),
            algorithm=self.config.JWT_ALGORITHM,
            headers={"kid": self.config.JWT_KEY_ID},
        )

    def _decode(self, token: str) -> Optional[dict]:
        """
        Verify signature and issuer. Audience and expiry are checked against
        the injected clock by the callers.
        """
        try:
            return jwt.decode(
                token,
                self._verification_key(),
                algorithms=[self.config.JWT_ALGORITHM],
                issuer=self.config.JWT_ISSUER,
                options={"verify_aud": False, "verify_exp": False},
            )
        except JWTError:
            return None

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _issue_jwts(self, session_id: UUID, claims: SubjectClaims, now: datetime) -> tuple:
        ttl = timedelta(minutes=self.config.ACCESS_TOKEN_TTL_MINUTES)
        iat = _timestamp(now)
        exp = _timestamp(now + ttl)

        access_token = self._encode(
            {
                "sub": str(claims.subject_id),
                "sid": str(session_id),
                "roles": claims.roles,
                "iss": self.config.JWT_ISSUER,
                "aud": self.config.ACCESS_TOKEN_AUDIENCE,
                "jti": str(uuid4()),
                "iat": iat,
                "exp": exp,
                "token_use": "access",
                "scope": "openid profile",
            }
        )
        id_token = self._encode(
            {
                "sub": str(claims.subject_id),
                "sid": str(session_id),
                "iss": self.config.JWT_ISSUER,
                "aud": self.config.ID_TOKEN_AUDIENCE,
                "jti": str(uuid4()),
                "iat": iat,
                "exp": exp,
                "auth_time": iat,
                "token_use": "id",
                "preferred_username": claims.username,
                "email": claims.email,
                "given_name": claims.given_name,
                "family_name": claims.family_name,
                "roles": claims.roles,
            }
        )
        return access_token, id_token, int(ttl.total_seconds())

    async def issue_set(
        self,
        session_id: UUID,
        claims: SubjectClaims,
        parent_token_id: Optional[UUID] = None,
    ) -> TokenSet:
        """
        Issue access, identity and refresh tokens for a session.

        Any refresh token still active on the session is revoked first.
        """
        now = self.clock()

        await self.uow.refresh_tokens.revoke_all_for_session(session_id, now)

        refresh_token = secrets.token_urlsafe(32)
        record = RefreshToken(
            session_id=session_id,
            subject_id=claims.subject_id,
            parent_token_id=parent_token_id,
            token_hash=hash_refresh_token(refresh_token),
            created_at=now,
            expires_at=now + timedelta(days=self.config.REFRESH_TOKEN_TTL_DAYS),
        )
        await self.uow.refresh_tokens.create(record)

        access_token, id_token, expires_in = self._issue_jwts(session_id, claims, now)
        return TokenSet(
            access_token=access_token,
            id_token=id_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            session_id=str(session_id),
        )

    # ------------------------------------------------------------------
    # Rotation and revocation
    # ------------------------------------------------------------------

    async def rotate(self, refresh_token: str) -> Result[TokenSet]:
        """
        Exchange a refresh token for a new token set.

        Errors (all INVALID_REFRESH_TOKEN, details.reason tells them apart):
            unknown, expired, session_inactive, subject_inactive,
            reuse_detected, concurrent_rotation
        """
        now = self.clock()
        record = await self.uow.refresh_tokens.get_by_token_hash(
            hash_refresh_token(refresh_token)
        )

        if record is None:
            return Return.err(self._invalid("unknown"))

        if record.revoked:
            if await self._rotated_moments_ago(record, now):
                logger.info(
                    "Refresh token %s presented again right after its rotation", record.id
                )
                return Return.err(self._invalid("concurrent_rotation"))

            logger.warning(
                "Refresh token reuse detected (session=%s, token=%s)",
                record.session_id,
                record.id,
            )
            if self.config.REVOKE_SESSION_ON_REFRESH_REUSE:
                await self.revoke_session(record.session_id)
                await self.uow.sessions.deactivate(
                    record.session_id, "refresh_token_reuse", now
                )
            return Return.err(
                self._invalid(
                    "reuse_detected",
                    session_id=str(record.session_id),
                    subject_id=str(record.subject_id),
                )
            )

        if now >= record.expires_at:
            return Return.err(self._invalid("expired"))

        session = await self.uow.sessions.get_by_id(record.session_id)
        if session is None or not session.is_usable(now):
            return Return.err(self._invalid("session_inactive"))

        user = await self.uow.users.get_by_id(record.subject_id)
        if user is None or user.status == UserStatus.locked:
            return Return.err(self._invalid("subject_inactive"))

        # Compare-and-revoke: losing a race leaves nothing to rotate
        if not await self.uow.refresh_tokens.revoke_if_active(record.id, now):
            return Return.err(self._invalid("concurrent_rotation"))

        await self.uow.sessions.touch(session.id, now)
        token_set = await self.issue_set(
            session.id, SubjectClaims.from_user(user), parent_token_id=record.id
        )
        return Return.ok(token_set)

    async def _rotated_moments_ago(self, record: RefreshToken, now: datetime) -> bool:
        """
        True when the record was revoked by a rotation within
        REFRESH_REUSE_GRACE_SECONDS, i.e. a duplicate of a request that won.
        """
        grace = self.config.REFRESH_REUSE_GRACE_SECONDS
        if not grace or record.revoked_at is None:
            return False
        if now - record.revoked_at > timedelta(seconds=grace):
            return False
        return await self.uow.refresh_tokens.get_child(record.id) is not None

    @staticmethod
    def _invalid(reason: str, **details) -> Error:
        return Error(
            "INVALID_REFRESH_TOKEN",
            "Refresh token is invalid or expired",
            {"reason": reason, **details},
        )

    async def revoke_session(self, session_id: UUID) -> int:
        """Revoke every refresh token of a session. Returns count."""
        return await self.uow.refresh_tokens.revoke_all_for_session(session_id, self.clock())

    async def revoke_refresh_token(self, refresh_token: str) -> bool:
        """Revoke one refresh token. Unknown or already revoked tokens return False."""
        record = await self.uow.refresh_tokens.get_by_token_hash(
            hash_refresh_token(refresh_token)
        )
        if record is None:
            return False
        return await self.uow.refresh_tokens.revoke_if_active(record.id, self.clock())

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def verify_access_token(self, token: str) -> Optional[dict]:
        """Return the claims of a valid, unexpired access token, else None"""
        payload = self._decode(token)
        if payload is None:
            return None
        if payload.get("token_use") != "access":
            return None
        if payload.get("aud") != self.config.ACCESS_TOKEN_AUDIENCE:
            return None
        if _timestamp(self.clock()) >= payload.get("exp", 0):
            return None
        return payload

    async def introspect(self, token: str) -> IntrospectionResponse:
        """
        Describe a token: signed JWTs are active until exp, refresh tokens
        while their record is neither revoked nor expired.
        """
        now = self.clock()

        payload = self._decode(token)
        if payload is not None:
            audiences = (self.config.ACCESS_TOKEN_AUDIENCE, self.config.ID_TOKEN_AUDIENCE)
            if payload.get("aud") not in audiences or _timestamp(now) >= payload.get("exp", 0):
                return IntrospectionResponse(active=False)
            return IntrospectionResponse(
                active=True,
                sub=payload.get("sub"),
                sid=payload.get("sid"),
                token_type="Bearer",
                token_use=payload.get("token_use"),
                aud=payload.get("aud"),
                iss=payload.get("iss"),
                exp=payload.get("exp"),
                iat=payload.get("iat"),
                roles=payload.get("roles"),
                username=payload.get("preferred_username"),
            )

        record = await self.uow.refresh_tokens.get_by_token_hash(hash_refresh_token(token))
        if record is None or not record.is_active(now):
            return IntrospectionResponse(active=False)
        return IntrospectionResponse(
            active=True,
            sub=str(record.subject_id),
            sid=str(record.session_id),
            token_type="refresh_token",
            token_use="refresh",
            iss=self.config.JWT_ISSUER,
            exp=_timestamp(record.expires_at),
            iat=_timestamp(record.created_at),
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def jwks(self) -> dict:
        """Public signing keys. Symmetric secrets are never published."""
        if not self._asymmetric or not self.config.JWT_PUBLIC_KEY:
            return {"keys": []}
        key = jwk.construct(self.config.JWT_PUBLIC_KEY, self.config.JWT_ALGORITHM).to_dict()
        key.update({"kid": self.config.JWT_KEY_ID, "use": "sig", "alg": self.config.JWT_ALGORITHM})
        return {"keys": [key]}

    def openid_configuration(self) -> dict:
        issuer = self.config.JWT_ISSUER.rstrip("/")
        return {
            "issuer": self.config.JWT_ISSUER,
            "jwks_uri": f"{issuer}/.well-known/jwks.json",
            "token_endpoint": f"{issuer}/auth/refresh",
            "userinfo_endpoint": f"{issuer}/oauth2/userinfo",
            "introspection_endpoint": f"{issuer}/oauth2/introspect",
            "revocation_endpoint": f"{issuer}/oauth2/revoke",
            "end_session_endpoint": f"{issuer}/auth/logout",
            "response_types_supported": ["token", "id_token"],
            "grant_types_supported": ["password", "refresh_token"],
            "subject_types_supported": ["public"],
            "id_token_signing_alg_values_supported": [self.config.JWT_ALGORITHM],
            "scopes_supported": ["openid", "profile"],
            "claims_supported": [
                "sub",
                "sid",
                "iss",
                "aud",
                "exp",
                "iat",
                "preferred_username",
                "email",
                "given_name",
                "family_name",
                "roles",
            ],
        }
