"""
Standardized exception hierarchy for the progression engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class ProgressionError(Exception):
    """
    Base exception for all progression engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Every error is scoped to one request; nothing here is fatal to the process.

    Example:
        raise ProgressionError(
            message="Failed to apply reward",
            player_id="child-123",
            operation="record_game_result",
            context={"mode": "wordle"}
        )
    """

    log_level = logging.ERROR

    def __init__(
        self,
        message: str,
        player_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.player_id = player_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "player_id": self.player_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (InvalidInput)
# ==========================================

class ValidationError(ProgressionError):
    """
    Raised when client input is out of range or malformed

    Rejected before any calculation; never silently clamped.

    Examples:
    - Negative correct count
    - Guess count outside 1..6
    - Unknown game mode or rate-limit action

    Example:
        raise ValidationError(
            message="Guess count must be between 1 and 6",
            field="guess_count",
            value=9,
            player_id="child-123"
        )
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Gameplay Errors
# ==========================================

class AlreadyCompletedTodayError(ProgressionError):
    """A daily-limited game was submitted after today's quota was consumed"""

    log_level = logging.INFO

    def __init__(
        self,
        message: str = "Daily quota already used",
        mode: Optional[str] = None,
        day_key: Optional[str] = None,
        **kwargs
    ):
        self.mode = mode
        self.day_key = day_key
        super().__init__(
            message=message,
            user_message="You've already played this today. Come back tomorrow!",
            context={"mode": mode, "day_key": day_key},
            **kwargs
        )


class RateLimitedError(ProgressionError):
    """
    Caller exceeded the action's budget for the current window

    Carries the action, the limit and how long to wait before retrying.
    """

    log_level = logging.WARNING

    def __init__(
        self,
        action: str,
        limit: int,
        retry_after_seconds: int,
        identifier: Optional[str] = None,
        **kwargs
    ):
        self.action = action
        self.limit = limit
        self.identifier = identifier
        self.retry_after_seconds = retry_after_seconds
        retry_minutes = max(1, -(-retry_after_seconds // 60))
        super().__init__(
            message=f"Rate limit exceeded for {action} ({limit} per window)",
            user_message=(
                f"You are rate limited. Please try again after {retry_minutes} "
                f"minute{'s' if retry_minutes != 1 else ''}. "
                "If this issue persists please contact support."
            ),
            context={
                "action": action,
                "limit": limit,
                "identifier": identifier,
                "retry_after_seconds": retry_after_seconds,
            },
            **kwargs
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "type": "RATE_LIMIT",
            "action": self.action,
            "limit": self.limit,
            "retry_after_seconds": self.retry_after_seconds,
        })
        return data


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(ProgressionError):
    """
    Base class for database-related errors
    """
    pass


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your progress. Please try again.",
            context={"query": query},
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    """Requested record (player, family, member) does not exist"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Authentication & Authorization
# ==========================================

class AuthenticationError(ProgressionError):
    """Session token missing, unknown or expired"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Not authenticated",
        **kwargs
    ):
        super().__init__(
            message=message,
            user_message="Your session has expired. Please sign in again.",
            **kwargs
        )


class AuthorizationError(ProgressionError):
    """Caller lacks permission for requested operation"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Insufficient permissions",
        resource: Optional[str] = None,
        **kwargs
    ):
        self.resource = resource
        super().__init__(
            message=message,
            user_message=f"You don't have permission to access {resource or 'this resource'}.",
            context={"resource": resource},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    player_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ProgressionError:
    """
    Wrap external exceptions (psycopg, etc.) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        player_id: Player ID if applicable
        context: Additional context

    Returns:
        Appropriate ProgressionError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="save_progress",
                player_id="child-123",
            )
    """
    # Import here to avoid circular dependencies
    import psycopg

    if isinstance(error, ProgressionError):
        return error

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            player_id=player_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            player_id=player_id,
            operation=operation,
            cause=error
        )

    # Generic fallback
    return ProgressionError(
        message=f"{operation} failed: {str(error)}",
        player_id=player_id,
        operation=operation,
        context=context,
        cause=error
    )
