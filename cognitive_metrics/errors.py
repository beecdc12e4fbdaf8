from __future__ import annotations


class ValidationError(ValueError):
    """Caller supplied an unusable submission; never retried."""


class PersistenceError(RuntimeError):
    """A game store could not be read or written."""
