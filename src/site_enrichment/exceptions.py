"""Exceptions raised by the enrichment pipeline."""


class EnrichmentError(Exception):
    """Base class for pipeline errors."""


class FetchError(EnrichmentError):
    """A URL could not be fetched by any tier."""

    def __init__(self, url, error=None):
        self.url = url
        self.error = error
        message = error.message if error is not None else "no tier succeeded"
        super().__init__(f"{url}: {message}")


class PersistenceError(EnrichmentError):
    """A capture or record write failed."""
