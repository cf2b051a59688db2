"""Error taxonomy for quantile maps and the tooling built on them."""

from __future__ import annotations


class QuantMapError(Exception):
    """Base class for every error raised by quantmap."""


class BucketRangeError(QuantMapError, ValueError):
    """Raised at construction when the bucket index range is malformed."""

    def __init__(self, lower_bucket_index: int, higher_bucket_index: int, reason: str = ""):
        message = reason or (
            f"invalid bucket range: lower={lower_bucket_index} "
            f"higher={higher_bucket_index}"
        )
        super().__init__(message)
        self.lower_bucket_index = lower_bucket_index
        self.higher_bucket_index = higher_bucket_index


class UnknownItemError(QuantMapError, KeyError):
    """Raised when querying the usage of a key the map has never seen."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"unknown item: {self.key!r}"


class SettingsError(QuantMapError, ValueError):
    """Raised when asset settings are queried with an unknown category."""


class AssetError(QuantMapError, ValueError):
    """Raised for malformed asset metadata (e.g. an invalid GUID)."""


class NeverRaise(QuantMapError, RuntimeError):
    """Sentinel exception for code paths that must be unreachable.

    Raising this exception means an internal invariant was broken; it is a
    programming error, never an expected runtime condition.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})

    @property
    def payload(self) -> dict[str, object]:
        return {"reason": self.reason, "env": dict(self.env)}


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
