"""Error taxonomy shared by the core and adapters.

Adapters translate library exceptions into these types at the boundary so the
orchestrator can decide what is a rejection and what is fatal for a cycle.
"""

from __future__ import annotations


class FetchError(Exception):
    """Base class for reddit-fetch errors."""


class TransientFetchError(FetchError):
    """Network or timeout failure; retried on the next scheduled cycle only."""


class DecodeError(FetchError):
    """Corrupt or unsupported image content."""


class UnsupportedFormatError(FetchError):
    """Media type outside the accepted whitelist."""


class PersistenceError(FetchError):
    """The hash store or source state could not be read or written."""
