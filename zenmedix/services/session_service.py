"""Server-side sessions with inactivity expiry."""

import uuid
from datetime import datetime, timedelta

import structlog

from zenmedix.config import settings
from zenmedix.core.clock import Clock, utc_now
from zenmedix.core.exceptions import SessionExpiredException, UnauthorizedException
from zenmedix.core.record_store import RecordStore
from zenmedix.core.redis_client import LocalStorage, StorageKeys
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.auth import Session, SessionInfo
from zenmedix.schemas.users import UserProfile
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)


class SessionService:
    """
    Create, refresh and end dashboard sessions.

    Every authenticated request counts as activity. A session idle for
    ``timeout`` or longer is closed on its next use: it is deleted, the
    expiry is audited and ``SessionExpiredException`` is raised.
    """

    def __init__(
        self,
        storage: LocalStorage,
        store: RecordStore,
        clock: Clock = utc_now,
        timeout: timedelta | None = None,
    ):
        """Initialize with local storage, an anonymous record store handle and a clock."""
        self.storage = storage
        self.store = store
        self.clock = clock
        self.timeout = (
            timeout if timeout is not None else timedelta(minutes=settings.session_timeout_minutes)
        )
        # Stored sessions are purged by Redis once they can no longer be valid
        self.storage_ttl = int(timedelta(hours=settings.session_max_age_hours).total_seconds())

    @staticmethod
    def _key(session_id: str) -> str:
        return StorageKeys.SESSION.format(session_id=session_id)

    def _save(self, session: Session) -> None:
        self.storage.set(
            self._key(session.session_id),
            session.model_dump_json(),
            ttl=self.storage_ttl,
        )

    def create(self, user: UserProfile, record_store_token: str) -> Session:
        """Open a session for a freshly authenticated user."""
        now = self.clock()
        session = Session(
            session_id=uuid.uuid4().hex,
            user=user,
            record_store_token=record_store_token,
            created_at=now,
            last_activity=now,
        )
        self._save(session)
        logger.info("session_created", user_id=user.id, session_id=session.session_id)
        return session

    def get(self, session_id: str) -> Session | None:
        """Load a stored session without touching it."""
        raw = self.storage.get(self._key(session_id))
        if not raw:
            return None
        return Session.model_validate_json(raw)

    def expires_at(self, session: Session) -> datetime:
        """Moment the session expires if no further activity is seen."""
        return session.last_activity + self.timeout

    def is_idle(self, session: Session) -> bool:
        """Whether the inactivity window has elapsed."""
        return self.clock() >= self.expires_at(session)

    async def touch(self, session_id: str) -> Session:
        """
        Register activity on a session.

        Raises:
            UnauthorizedException: If the session does not exist
            SessionExpiredException: If the session was idle too long
        """
        session = self.get(session_id)
        if session is None:
            raise UnauthorizedException("Session not found")

        if self.is_idle(session):
            await self.expire(session)
            raise SessionExpiredException()

        session.last_activity = self.clock()
        self._save(session)
        return session

    async def expire(self, session: Session) -> None:
        """Close an idle session and record why."""
        self.storage.delete(self._key(session.session_id))
        logger.info(
            "session_expired",
            user_id=session.user.id,
            last_activity=session.last_activity.isoformat(),
        )
        await self._audit(session).log(
            AuditAction.SESSION_EXPIRED,
            {"lastActivity": session.last_activity.isoformat()},
        )

    async def end(self, session: Session) -> None:
        """Log out: record the session duration and delete the session."""
        last_access = self.get_last_access(session.user.id)
        started = datetime.fromisoformat(last_access) if last_access else session.created_at
        duration = self.clock() - started

        await self._audit(session).log(
            AuditAction.LOGOUT,
            {"sessionDuration": int(duration.total_seconds() * 1000)},
        )
        self.storage.delete(self._key(session.session_id))
        logger.info("session_ended", user_id=session.user.id, session_id=session.session_id)

    def record_last_access(self, user_id: str) -> str:
        """Store the current time as the user's last access."""
        stamp = self.clock().isoformat()
        self.storage.set(StorageKeys.LAST_ACCESS.format(user_id=user_id), stamp)
        return stamp

    def get_last_access(self, user_id: str) -> str | None:
        """Return the stored last-access timestamp, if any."""
        return self.storage.get(StorageKeys.LAST_ACCESS.format(user_id=user_id))

    def info(self, session: Session) -> SessionInfo:
        """Describe a session for the client."""
        return SessionInfo(
            user=session.user,
            created_at=session.created_at,
            last_activity=session.last_activity,
            expires_at=self.expires_at(session),
            last_access=self.get_last_access(session.user.id),
        )

    def _audit(self, session: Session) -> AuditService:
        return AuditService(
            self.store.with_token(session.record_store_token),
            user=session.user,
            clock=self.clock,
        )
