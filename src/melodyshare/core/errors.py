"""Error taxonomy shared by the MelodyShare services.

Validation and rate-limit errors are expected, user-facing outcomes and carry
enough detail to redisplay a field-specific message. ``StoreUnavailable`` is a
transient fault that is safe to retry. ``ConflictRetry`` subclasses never leave
the service layer: they roll back the current transaction and the operation is
run again.
"""

from __future__ import annotations

from datetime import timedelta


class MelodyShareError(RuntimeError):
    """Base class for all MelodyShare domain errors."""


class ValidationError(MelodyShareError):
    """Caller input is malformed; no state was touched."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class MoodRequired(ValidationError):
    """A mood must be chosen from the configured list before submitting."""

    def __init__(self, reason: str = "Pick a mood before sharing a song") -> None:
        super().__init__("mood", reason)


class NotFoundError(MelodyShareError):
    """A referenced community or user does not exist."""


class NotInCommunity(MelodyShareError):
    """The user has no active community association."""

    def __init__(self, message: str = "Join a community before sharing a song") -> None:
        super().__init__(message)


class RateLimited(MelodyShareError):
    """A song was submitted before the cooldown elapsed."""

    def __init__(self, retry_after: timedelta, cooldown: timedelta = timedelta(hours=24)) -> None:
        self.retry_after = max(retry_after, timedelta(0))
        self.cooldown = cooldown
        super().__init__(
            f"You can only add one song every {self.cooldown_text}; "
            f"try again in {self.retry_after_text}"
        )

    @property
    def cooldown_text(self) -> str:
        hours = self.cooldown.total_seconds() / 3600
        if hours.is_integer():
            hours = int(hours)
        return f"{hours} hour" if hours == 1 else f"{hours} hours"

    @property
    def retry_after_seconds(self) -> int:
        """Remaining cooldown rounded up to whole seconds."""
        seconds = self.retry_after.total_seconds()
        return int(seconds) + (0 if seconds.is_integer() else 1)

    @property
    def retry_after_text(self) -> str:
        hours, remainder = divmod(self.retry_after_seconds, 3600)
        minutes = -(-remainder // 60)
        if minutes == 60:
            hours, minutes = hours + 1, 0
        return f"{hours}h {minutes:02d}m"


class StoreUnavailable(MelodyShareError):
    """The backing store could not be reached or did not answer in time."""

    def __init__(self, message: str = "Storage is temporarily unavailable, please try again") -> None:
        super().__init__(message)


class ConflictRetry(MelodyShareError):
    """Internal: a uniqueness race was lost; the whole operation should be re-run."""


class DuplicateCodeCollision(ConflictRetry):
    """Internal: another writer stored the same join code first."""


class DuplicateUsername(ConflictRetry):
    """Internal: another writer created the same username first."""


class TrackSearchError(MelodyShareError):
    """The external track search provider failed."""


__all__ = [
    "ConflictRetry",
    "DuplicateCodeCollision",
    "DuplicateUsername",
    "MelodyShareError",
    "MoodRequired",
    "NotFoundError",
    "NotInCommunity",
    "RateLimited",
    "StoreUnavailable",
    "TrackSearchError",
    "ValidationError",
]
