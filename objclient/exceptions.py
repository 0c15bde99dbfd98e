"""
Object client exceptions

This module defines the exception hierarchy for the object client.
All object storage errors inherit from StorageError base class.
"""


class StorageError(Exception):
    """
    Base exception for all object client errors.

    Catch this to handle any object storage error generically.
    """

    pass


class StorageInvalidArgumentError(StorageError):
    """
    Exception raised when the caller supplied insufficient or contradictory parameters.

    It is always raised before any backend call is attempted, for example:
    - A write to a backend that needs the object size was made without one
    - A key that cannot be mapped onto the backend
    - Malformed configuration

    Not retryable without changing the arguments.
    """

    pass


class StorageKeyError(StorageInvalidArgumentError):
    """
    Exception raised when an object key is invalid for the backend.

    Args:
        message: Description of why the key is invalid
    """

    pass


class StorageConfigError(StorageInvalidArgumentError):
    """
    Exception raised when client configuration is invalid.

    This exception is raised while constructing a client, never lazily on first use:
    - Required configuration parameters are missing
    - Mutually dependent options disagree (e.g. SSE-C key without v4 signature or https)
    - Backend type is not recognized

    Args:
        message: Description of the configuration error
    """

    pass


class StorageNotFoundError(StorageError):
    """
    Exception raised when the requested object does not exist.

    Args:
        message: Description of the error
        key: The missing object key
    """

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class StorageCanceledError(StorageError):
    """
    Exception raised when an operation was aborted by its context.

    Covers both caller-driven cancellation (explicit cancel or an expired deadline)
    and cancellation triggered by the stall watchdog of a stream, the two are
    intentionally indistinguishable. Callers may retry.
    """

    pass


class StorageBackendError(StorageError):
    """
    Exception raised when a storage backend operation fails.

    This exception wraps backend-specific errors such as:
    - Network errors for remote storage
    - Permission errors
    - File system I/O errors
    - Backend service unavailable

    Args:
        message: Description of the backend error
        originalError: The original exception that caused this error (optional)
        operation: Name of the failed operation (optional)
        key: Object key the operation was working on (optional)
    """

    def __init__(
        self,
        message: str,
        originalError: Exception | None = None,
        operation: str | None = None,
        key: str | None = None,
    ):
        """
        Initialize StorageBackendError with message and optional context.

        Args:
            message: Description of the backend error
            originalError: The original exception that caused this error
            operation: Name of the failed operation
            key: Object key the operation was working on
        """
        super().__init__(message)
        self.originalError = originalError
        self.operation = operation
        self.key = key


class StoragePartialBatchError(StorageBackendError):
    """
    Exception raised when at least one key of a batch removal failed.

    Only the first failure is reported, outcomes of the other keys are not exposed.
    The message always names the offending key and the underlying cause.
    """

    pass
