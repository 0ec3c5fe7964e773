"""Exception hierarchy for proof generation and registry reads.

Absence of a mapping value is not an error: reads return ``None`` for it.
"""

from typing import Optional


class PolicyEngineError(Exception):
    """Base class for every error raised by this package."""


# --- Input and capacity ---

class InvalidInputError(PolicyEngineError, ValueError):
    """Malformed leaves, addresses, literals or hash operands."""


class CapacityExceededError(PolicyEngineError, ValueError):
    """More identities than a tree of the configured depth can hold."""

    def __init__(self, limit: int, provided: int):
        super().__init__(f"Leaves limit exceeded. Max: {limit}, provided: {provided}")
        self.limit = limit
        self.provided = provided


# --- Remote reads ---

class FetchError(PolicyEngineError):
    """A mapping read failed."""

    def __init__(self, message: str, url: str, attempts: int = 1):
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class RateLimitedError(FetchError):
    """The node kept answering 429 until the retry budget ran out."""


class ClientError(FetchError):
    """4xx response other than 404/429. Never retried."""

    def __init__(self, message: str, url: str, status: int, attempts: int = 1):
        super().__init__(message, url, attempts)
        self.status = status


class ServerError(FetchError):
    """5xx (or otherwise unexpected) response."""

    def __init__(self, message: str, url: str, status: int, attempts: int = 1):
        super().__init__(message, url, attempts)
        self.status = status


class TransportError(FetchError):
    """Connection, timeout or other network-level fault."""


class FetchFailedError(FetchError):
    """Retryable failures persisted through every attempt."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]):
        detail = str(last_error) if last_error is not None else "unknown error"
        super().__init__(f"Failed to fetch after {attempts} attempts: {detail}", url, attempts)
        self.last_error = last_error


# --- Registry ---

class RegistryError(PolicyEngineError):
    """A mandatory registry value was missing on chain."""


class IdentityFrozenError(PolicyEngineError):
    """The queried identity is a leaf of the registry tree."""

    def __init__(self, identity: str):
        super().__init__(f"Address {identity} is in the freeze list; no non-inclusion witness exists")
        self.identity = identity
