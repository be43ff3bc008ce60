"""Authentication service: password login with lockout, and logout."""

import math
from datetime import datetime, timedelta

import structlog

from zenmedix.config import settings
from zenmedix.core.clock import Clock, utc_now
from zenmedix.core.exceptions import (
    AccountLockedException,
    NotFoundException,
    RecordStoreError,
    StorageUnavailableError,
    UnauthorizedException,
)
from zenmedix.core.record_store import RecordStore
from zenmedix.core.redis_client import LocalStorage, StorageKeys
from zenmedix.core.security import create_session_token
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.auth import LockoutStatus, LoginResponse, Session
from zenmedix.schemas.users import UserProfile
from zenmedix.services.audit_service import AuditService
from zenmedix.services.session_service import SessionService

logger = structlog.get_logger(__name__)

# Upstream statuses that mean "the credentials were rejected"
CREDENTIAL_REJECTED = {400, 401, 403}


# Reserved attempts from requests that never finished are forgotten after this
ATTEMPTS_TTL_SECONDS = 24 * 3600


class LoginThrottle:
    """
    Consecutive failed login counter with a timed lockout.

    Every attempt reserves a slot with an atomic increment before the password
    is checked, so concurrent requests from one client cannot exceed
    ``max_attempts`` checks. Reaching the limit with a failure engages the
    lockout, which refuses attempts until ``lockout_duration`` has passed.
    The counter restarts when the lockout engages and on every successful
    login. Storage errors refuse the attempt rather than skip the check.
    """

    def __init__(
        self,
        storage: LocalStorage,
        clock: Clock = utc_now,
        max_attempts: int | None = None,
        lockout_duration: timedelta | None = None,
    ):
        """Initialize with storage, clock and limits."""
        self.storage = storage
        self.clock = clock
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.max_login_attempts
        )
        self.lockout_duration = (
            lockout_duration
            if lockout_duration is not None
            else timedelta(minutes=settings.lockout_duration_minutes)
        )

    @staticmethod
    def _lockout_key(client: str) -> str:
        return StorageKeys.LOCKOUT.format(client=client)

    @staticmethod
    def _attempts_key(client: str) -> str:
        return StorageKeys.LOGIN_ATTEMPTS.format(client=client)

    @property
    def lockout_minutes(self) -> int:
        return math.ceil(self.lockout_duration.total_seconds() / 60)

    def lockout_expiry(self, client: str) -> datetime | None:
        """
        Return when the client's lockout ends, clearing lapsed lockouts.

        Raises:
            StorageUnavailableError: If the lockout state cannot be read
        """
        raw = self.storage.get(self._lockout_key(client), strict=True)
        if not raw:
            return None

        expiry = datetime.fromisoformat(raw)
        if self.clock() >= expiry:
            self.storage.delete(self._lockout_key(client))
            return None
        return expiry

    def remaining_minutes(self, expiry: datetime) -> int:
        """Whole minutes left on a lockout, rounded up."""
        seconds = (expiry - self.clock()).total_seconds()
        return max(1, math.ceil(seconds / 60))

    def failed_attempts(self, client: str) -> int:
        """Attempts counted for the client, including ones still in flight."""
        raw = self.storage.get(self._attempts_key(client), strict=True)
        return int(raw) if raw else 0

    def check(self, client: str) -> None:
        """
        Refuse the attempt if the client is locked out.

        Raises:
            AccountLockedException: While the lockout is active
            StorageUnavailableError: If the lockout state cannot be read
        """
        expiry = self.lockout_expiry(client)
        if expiry is not None:
            raise AccountLockedException(self.remaining_minutes(expiry))

    def reserve(self, client: str) -> int:
        """
        Claim an attempt before the password is checked.

        Returns:
            The attempt number

        Raises:
            AccountLockedException: If the client is locked out or every
                attempt is already taken
            StorageUnavailableError: If the counter cannot be updated
        """
        self.check(client)

        attempt = self.storage.incr(self._attempts_key(client), ttl=ATTEMPTS_TTL_SECONDS)
        if attempt > self.max_attempts:
            logger.warning("login_attempt_refused", client=client, attempt=attempt)
            raise AccountLockedException(self.lockout_minutes)
        return attempt

    def register_failure(self, client: str, attempt: int) -> int:
        """
        Settle a reserved attempt as failed, engaging the lockout at the limit.

        Returns:
            Attempts left before the lockout
        """
        if attempt >= self.max_attempts:
            expiry = self.clock() + self.lockout_duration
            self.storage.set(
                self._lockout_key(client),
                expiry.isoformat(),
                ttl=int(self.lockout_duration.total_seconds()),
                strict=True,
            )
            self.storage.delete(self._attempts_key(client), strict=True)
            logger.warning("login_lockout_engaged", client=client, until=expiry.isoformat())
            return 0

        return self.max_attempts - attempt

    def release(self, client: str) -> None:
        """Give back a reserved attempt whose password was never judged."""
        try:
            if self.storage.incr(self._attempts_key(client), amount=-1) <= 0:
                # Nothing left in flight, or a lockout or success cleared the counter
                self.storage.delete(self._attempts_key(client))
        except StorageUnavailableError:
            logger.warning("login_attempt_not_released", client=client)

    def register_success(self, client: str) -> None:
        """Reset the counter and any lockout."""
        self.storage.delete(self._attempts_key(client))
        self.storage.delete(self._lockout_key(client))

    def status(self, client: str) -> LockoutStatus:
        """Describe the client's throttling state."""
        expiry = self.lockout_expiry(client)
        if expiry is not None:
            return LockoutStatus(
                locked=True,
                remaining_minutes=self.remaining_minutes(expiry),
                attempts_remaining=0,
            )
        return LockoutStatus(
            locked=False,
            attempts_remaining=max(0, self.max_attempts - self.failed_attempts(client)),
        )


class AuthService:
    """Password login against the record store, guarded by ``LoginThrottle``."""

    USERS_COLLECTION = "users"

    def __init__(
        self,
        store: RecordStore,
        sessions: SessionService,
        throttle: LoginThrottle,
        clock: Clock = utc_now,
    ):
        """Initialize with an anonymous record store handle and collaborators."""
        self.store = store
        self.sessions = sessions
        self.throttle = throttle
        self.clock = clock

    async def login(self, email: str, password: str, client: str) -> LoginResponse:
        """
        Authenticate a user and open a session.

        Args:
            email: Email or username
            password: Plain password, checked by the record store
            client: Client key used for throttling (network address)

        Returns:
            Session token and user profile

        Raises:
            AccountLockedException: If the client is or becomes locked out
            UnauthorizedException: If the credentials are rejected
            RecordStoreError: If the record store cannot be reached
            StorageUnavailableError: If the lockout state cannot be read
        """
        attempt = self.throttle.reserve(client)

        try:
            auth = await self.store.collection(self.USERS_COLLECTION).auth_with_password(
                email, password
            )
        except NotFoundException:
            auth = None
        except RecordStoreError as e:
            if e.upstream_status not in CREDENTIAL_REJECTED:
                self.throttle.release(client)
                raise
            auth = None

        if auth is None:
            await self._handle_failure(email, client, attempt)

        user = UserProfile.from_record(auth["record"])
        self.throttle.register_success(client)

        session = self.sessions.create(user, auth["token"])
        self.sessions.record_last_access(user.id)

        await AuditService(
            self.store.with_token(auth["token"]),
            user=user,
            ip_address=client,
            clock=self.clock,
        ).log(
            AuditAction.LOGIN,
            {"email": email, "timestamp": self.clock().isoformat()},
        )
        logger.info("login_succeeded", user_id=user.id, role=user.role)

        return LoginResponse(
            access_token=create_session_token(session.session_id, user.id),
            expires_in_minutes=int(self.sessions.timeout.total_seconds() // 60),
            user=user,
        )

    async def _handle_failure(self, email: str, client: str, attempt: int) -> None:
        remaining = self.throttle.register_failure(client, attempt)
        logger.info("login_failed", client=client, attempt=attempt)

        await AuditService(self.store, ip_address=client, clock=self.clock).log(
            AuditAction.LOGIN_FAILED,
            {"email": email, "attempt": attempt},
        )

        if remaining <= 0:
            raise AccountLockedException(self.throttle.lockout_minutes)
        # A concurrent attempt may have engaged the lockout meanwhile
        self.throttle.check(client)
        raise UnauthorizedException(f"Credenciales inválidas. Intentos restantes: {remaining}")

    async def logout(self, session: Session) -> None:
        """End a session."""
        await self.sessions.end(session)

    def lockout_status(self, client: str) -> LockoutStatus:
        """Expose the client's throttling state."""
        return self.throttle.status(client)
