"""Exceptions raised by the trustless file server."""


class TrustlessFSError(Exception):
    """Base class for every error raised by this package."""


class InvalidInput(TrustlessFSError, ValueError):
    """Input that can never produce a valid tree (empty or oversized file)."""


class DecodeError(TrustlessFSError, ValueError):
    """Persisted record or binary proof is malformed."""


class StoreError(TrustlessFSError, RuntimeError):
    """The object store rejected a chunk or could not be reached."""
