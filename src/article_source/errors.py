"""Error taxonomy shared by the store client and the sync engine."""
from __future__ import annotations

from typing import Sequence


class CatalogError(Exception):
    """Base class for catalog engine failures."""


class TransportError(CatalogError):
    """Network failure, timeout, or a non-2xx response from the remote store."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShapeError(CatalogError):
    """The remote store answered, but not with the shape the engine relies on."""


class ValidationError(CatalogError):
    """A draft was rejected before reaching the network."""

    def __init__(self, message: str, *, conflicts: Sequence[object] = ()) -> None:
        super().__init__(message)
        self.conflicts = tuple(conflicts)


class PersistenceError(CatalogError):
    """The persisted hashtag library could not be read."""
