"""Exception types shared across Herald components."""

from typing import Optional


class HeraldError(Exception):
    """Base class for Herald errors."""
    pass


class InvalidEvent(HeraldError):
    """A raw event is missing required fields or has the wrong shape."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ReasoningUnavailable(HeraldError):
    """The reasoning service could not produce a usable response.

    Only raised inside the guarded runner; callers see ``None`` instead.
    """
    pass
