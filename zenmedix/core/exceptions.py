"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class AccountLockedException(AppException):
    """Login attempts are suspended for this client."""

    def __init__(self, remaining_minutes: int):
        """Initialize with 423 status code and the minutes left on the lockout."""
        self.remaining_minutes = remaining_minutes
        super().__init__(
            f"Cuenta bloqueada. Intenta en {remaining_minutes} minutos",
            status_code=423,
        )


class SessionExpiredException(UnauthorizedException):
    """Session was closed after a period of inactivity."""

    def __init__(self, message: str = "Tu sesión ha expirado por inactividad"):
        """Initialize with 401 status code."""
        super().__init__(message)


class RecordStoreError(AppException):
    """Remote record store call failed."""

    def __init__(self, message: str = "Record store request failed", upstream_status: int = 0):
        """Initialize with 502 status code and the upstream HTTP status."""
        self.upstream_status = upstream_status
        super().__init__(message, status_code=502)


class MessagingError(AppException):
    """WhatsApp provider call failed."""

    def __init__(self, message: str = "WhatsApp delivery failed", upstream_status: int = 0):
        """Initialize with 502 status code and the upstream HTTP status."""
        self.upstream_status = upstream_status
        super().__init__(message, status_code=502)


class StorageUnavailableError(AppException):
    """Local storage could not be read or written where a value is required."""

    def __init__(self, message: str = "Servicio temporalmente no disponible"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
