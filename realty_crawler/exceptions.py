"""
Exceptions raised by the extraction pipeline.

ParseError and its subclasses abandon a whole page: callers never receive a
partial batch of ads. Per-field extraction misses are not errors.
"""


class CrawlerError(Exception):
    """Base class for all realty_crawler errors."""
    pass


class ParseError(CrawlerError):
    """A fetched page could not be turned into ads."""
    pass


class MalformedMarkupError(ParseError):
    """Repaired markup is still not well-formed.

    The underlying lxml syntax error is chained as ``__cause__``.
    """
    pass


class MissingAnchorError(ParseError):
    """A structural marker required by preprocessing is absent."""

    def __init__(self, marker, provider=None):
        self.marker = marker
        self.provider = provider
        where = f" ({provider})" if provider else ""
        super().__init__(f"Required marker not found{where}: {marker!r}")


class InvalidPathError(ValueError):
    """A path expression does not follow the supported grammar."""
    pass


class UnsupportedUrlError(CrawlerError):
    """No registered crawler supports the given URL."""
    pass


class NotificationError(CrawlerError):
    """A notification sink failed to deliver a batch."""
    pass
