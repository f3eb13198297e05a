"""Errors raised by the enrichment cache and lock stores."""


class CacheError(Exception):
    """Base class for enrichment cache errors."""


class CacheStorageError(CacheError):
    """A key/value store operation could not be completed.

    The cache and the concurrency guard treat this as a miss (or a failed
    acquisition) and log it; it never aborts an enrichment.
    """


class RedisInitializationError(CacheStorageError):
    def __init__(self) -> None:
        super().__init__("Could not create the shared Redis client for enrichment storage")


class InvalidTTLError(CacheError, ValueError):
    """A cache or lock TTL was negative."""

    def __init__(self, ttl_value: float | None = None, field_name: str = "TTL"):
        self.ttl_value = ttl_value
        detail = f", got {ttl_value}" if ttl_value is not None else ""
        super().__init__(f"{field_name} must be non-negative{detail}")
