"""Session token lookup and sliding expiry.

Sessions live in Valkey under session:<token> with a TTL matching their
expiry. Tokens are issued by the external login service; this side only
reads and extends them.
"""

from datetime import timedelta
from uuid import UUID

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.types import Session
from auth.exceptions import SessionExpiredError
from utils.timezone import now_utc, parse_iso


class SessionManager:
    """Validates session tokens and slides their expiry."""

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    def _store(self, session: Session) -> None:
        remaining = int((session.expires_at - now_utc()).total_seconds())
        self._valkey.set_json(
            self._key(session.token),
            {
                "user_id": str(session.user_id),
                "created_at": session.created_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
                "last_activity_at": session.last_activity_at.isoformat(),
            },
            expire_seconds=max(remaining, 1),
        )

    def validate_session(self, token: str) -> Session:
        """Validate session token and return session.

        Raises SessionExpiredError if token unknown or expired. Extends the
        session when fewer than session_extend_threshold_hours remain.
        """
        data = self._valkey.get_json(self._key(token))

        if data is None:
            raise SessionExpiredError("Session not found or expired")

        session = Session(
            token=token,
            user_id=UUID(data["user_id"]),
            created_at=parse_iso(data["created_at"]),
            expires_at=parse_iso(data["expires_at"]),
            last_activity_at=parse_iso(data["last_activity_at"]),
        )

        now = now_utc()

        # Valkey TTL normally evicts first
        if now > session.expires_at:
            self._valkey.delete(self._key(token))
            raise SessionExpiredError("Session expired")

        threshold = timedelta(hours=self._config.session_extend_threshold_hours)
        if self._config.session_extend_on_activity and session.expires_at - now < threshold:
            session = self._extend_session(session)

        return session

    def _extend_session(self, session: Session) -> Session:
        now = now_utc()
        updated = session.model_copy(update={
            "expires_at": now + timedelta(hours=self._config.session_expiry_hours),
            "last_activity_at": now,
        })
        self._store(updated)
        return updated
