"""Exception hierarchy for hotfix_tools.

Runtime fetch failures (including integrity failures) are recoverable: the
update orchestrator catches them and keeps running on installed content.
Build-time and promotion failures propagate to the caller.
"""

from __future__ import annotations


class HotfixError(Exception):
    """Base class for all hotfix_tools errors."""


class NetworkUnavailable(HotfixError):
    """A manifest, descriptor, bundle or catalog could not be fetched.

    Attributes:
        url: The URL that failed, if known
    """

    def __init__(self, message: str, *, url: str | None = None):
        self.url = url
        super().__init__(message)


class HashMismatch(NetworkUnavailable):
    """Downloaded content does not match its descriptor.

    Attributes:
        expected: Expected hash or size as hex string or int
        actual: Actual hash or size as hex string or int
        key: Name of the artifact being verified
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str | int | None = None,
        actual: str | int | None = None,
        key: str | None = None,
        url: str | None = None,
    ):
        self.expected = expected
        self.actual = actual
        self.key = key
        super().__init__(message, url=url)


class BuildError(HotfixError):
    """A build-time step could not complete."""


class SizeLimitExceeded(BuildError):
    """The package exceeds the configured maximum size.

    Attributes:
        total_size: Size of the package bundles in bytes
        limit: Configured limit in bytes
    """

    def __init__(self, total_size: int, limit: int):
        self.total_size = total_size
        self.limit = limit
        super().__init__(
            f"Package size {total_size} bytes exceeds limit {limit} bytes "
            f"by {total_size - limit} bytes"
        )


class PromotionError(HotfixError):
    """Moving staged content into the local root failed part way."""


class BootstrapError(HotfixError):
    """The content resolver could not be initialized from installed content."""


class UpdateInProgressError(HotfixError):
    """Another update is already running against the same local root."""


class UpdateCancelled(HotfixError):
    """The update was cancelled before promotion began."""
