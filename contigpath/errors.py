from __future__ import annotations


class ContigNotFoundError(LookupError):
    """Raised when a contig name does not resolve in the registry or genome index."""

    def __init__(self, name: str, source: str = "registry") -> None:
        super().__init__(f"Contig '{name}' not found in {source}")
        self.name = name
        self.source = source


class NavigationError(ValueError):
    """Raised when a navigation transition would break a path invariant.

    The navigator guarantees that no state was changed when this is raised.
    """


class SequenceFetchError(RuntimeError):
    """Raised when the byte range for a sequence cannot be read."""


class UnknownSessionError(LookupError):
    """Raised when a session token is not (or no longer) cached."""
