"""Custom exception classes for Bwaincell."""

from typing import Optional


class BwaincellError(Exception):
    """Base class for all custom exceptions in Bwaincell."""

    pass


class ConfigurationError(BwaincellError):
    """Raised when loading or validating the middleware configuration fails."""

    pass


class DuplicateMiddlewareError(BwaincellError):
    """Raised when a middleware name is already registered in a pipeline."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"A different middleware named '{name}' is already registered. "
            "Middleware names must be unique within a pipeline."
        )


# ── Locally recovered rejections ─────────────────────────────────────────


class InteractionRejection(BwaincellError):
    """An interaction refused before business logic ran.

    ``user_message`` is safe to show to the invoking user; the exception
    text itself is for logs only.
    """

    user_message = "❌ Your request could not be processed."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class GuildOnlyViolation(InteractionRejection):
    """A non-command interaction arrived outside a guild."""

    user_message = "❌ This command can only be used in a server."


class InteractionValidationError(InteractionRejection):
    """Input failed a length, injection or format check.

    Carries the field and the name of the failing check, never the raw
    input, so the payload cannot be reflected back to the user.
    """

    user_message = "❌ Invalid input detected. Please check your input and try again."

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Field '{field}' failed check '{reason}'")


class RateLimitExceeded(InteractionRejection):
    """A per-user or per-guild quota is exhausted for the current window."""

    def __init__(
        self,
        *,
        category: str,
        limit: int,
        window_ms: int,
        retry_after_ms: float,
        scope: str = "user",
        message: Optional[str] = None,
    ):
        self.category = category
        self.limit = limit
        self.window_ms = window_ms
        self.retry_after_ms = retry_after_ms
        self.scope = scope

        retry_s = max(1, int(-(-retry_after_ms // 1000)))
        window_s = max(1, window_ms // 1000)
        base = message or "You are sending requests too quickly."
        user_message = (
            f"⏱️ {base} Limit: {limit} requests per {window_s}s. "
            f"Please try again in {retry_s}s."
        )
        super().__init__(
            f"Rate limit exceeded ({scope}, category={category}, limit={limit})",
            user_message=user_message,
        )


class ResponseDeliveryError(BwaincellError):
    """Sending a message back to the platform failed."""

    def __init__(self, verb: str, orig_exc: Exception, expired: bool = False):
        self.verb = verb
        self.orig_exc = orig_exc
        self.expired = expired

        full_msg = f"Failed to deliver response via {verb}"
        if expired:
            full_msg += " (interaction expired)"
        full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)
