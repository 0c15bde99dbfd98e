"""
Object client utility functions

This module provides small helpers shared by the configuration layer and the
backends: boolean-as-string parsing, metadata normalization, key validation
and batching.
"""

from typing import Iterator, Sequence

from .exceptions import StorageKeyError

# Maximum number of keys per batch delete request, both S3 and OSS limit it to 1000
REMOVE_BATCH_SIZE = 1000

# Page size used for listings
LIST_PAGE_SIZE = 1000


def stringToBool(value: str, default: bool) -> bool:
    """
    Parse boolean-as-string configuration value with a default-aware rule.

    For a feature enabled by default anything except literal "false" is True.
    For a feature disabled by default only literal "true" is True.

    Args:
        value: Raw configuration value
        default: Whether the feature is enabled by default

    Returns:
        The parsed flag

    Examples:
        >>> stringToBool("", True)
        True
        >>> stringToBool("False", True)
        True
        >>> stringToBool("", False)
        False
        >>> stringToBool("yes", False)
        False
    """
    if default:
        return value != "false"
    return value == "true"


def lowerMetadata(metadata: dict[str, str] | None) -> dict[str, str]:
    """
    Get a copy of metadata with lower-cased keys.

    Args:
        metadata: User metadata, may be None

    Returns:
        New dictionary with lower-cased keys
    """
    if not metadata:
        return {}
    return {str(key).lower(): str(value) for key, value in metadata.items()}


def stripMetadataPrefix(headers: dict[str, str], prefix: str) -> dict[str, str]:
    """
    Extract user metadata from response headers.

    Header names are matched case-insensitively against the prefix, the prefix is
    removed and the remaining name is lower-cased.

    Args:
        headers: Response headers
        prefix: Provider specific metadata header prefix (e.g. "x-oss-meta-")

    Returns:
        Metadata dictionary with lower-cased keys
    """
    prefix = prefix.lower()
    metadata: dict[str, str] = {}
    for name, value in headers.items():
        lowerName = name.lower()
        if lowerName.startswith(prefix):
            metadata[lowerName[len(prefix) :]] = value
    return metadata


def validateKey(key: str) -> list[str]:
    """
    Validate object key for backends which map keys onto paths.

    Args:
        key: Object key like "a/b/c.txt"

    Returns:
        List of key segments

    Raises:
        StorageKeyError: If the key is empty, absolute, contains control characters
            or "." / ".." / empty segments
    """
    if not key or not key.strip():
        raise StorageKeyError("Object key cannot be empty or only whitespace")

    if any(ord(char) < 32 or ord(char) == 127 for char in key):
        raise StorageKeyError(f"Object key contains control characters: {key!r}")

    if key.startswith("/") or "\\" in key:
        raise StorageKeyError(f"Object key must be a relative '/'-separated path: '{key}'")

    segments = key.split("/")
    for segment in segments:
        if segment in ("", ".", ".."):
            raise StorageKeyError(f"Object key contains invalid segment '{segment}': '{key}'")

    return segments


def batched(items: Sequence[str], size: int) -> Iterator[list[str]]:
    """Split items into lists of at most size elements, keeping order."""
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
