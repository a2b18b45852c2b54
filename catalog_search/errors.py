"""Error types raised by the search core and its store adapters."""
from __future__ import annotations


class CatalogSearchError(Exception):
    """Base class for search subsystem failures."""


class IndexUnavailable(CatalogSearchError):
    """The index store could not be reached or answered with an error."""


class CatalogStoreError(CatalogSearchError):
    """The canonical product store could not be read."""


class DataIntegrityError(CatalogSearchError):
    """A canonical record violates an invariant the projection relies on."""
