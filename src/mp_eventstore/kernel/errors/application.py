"""Application-layer errors – misuse of the library rather than bad data or I/O."""

from __future__ import annotations

from mp_eventstore.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """The library was wired or configured incorrectly.

    Raised before any storage call is made (e.g. invalid settings), so
    retrying without fixing the setup cannot succeed.
    """

    default_code = "application_error"


__all__ = ["ApplicationError"]
