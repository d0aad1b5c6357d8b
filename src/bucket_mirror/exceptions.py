# src/bucket_mirror/exceptions.py
"""Custom exceptions for the bucket-mirror application."""


class BucketMirrorError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(BucketMirrorError):
    """Raised for configuration-related issues."""

    pass


class BackendError(BucketMirrorError):
    """Raised when the storage backend fails in a way that may succeed on retry."""

    pass


class InvalidObjectError(BucketMirrorError):
    """
    Raised when a write is rejected because its key or arguments are invalid.

    Such an object can never be copied under its current name, so it is
    reported instead of retried. It is not a `BackendError`.
    """

    pass


class BackendUnavailable(BucketMirrorError):
    """Raised when the source inventory cannot be listed completely."""

    pass


class SessionError(BucketMirrorError):
    """Raised when a sync session or retry coordinator is used after it finished."""

    pass
