"""Exception hierarchy for SiteMapper."""
from __future__ import annotations

__all__ = (
    "SiteMapperError",
    "UnsupportedProtocolError",
    "SeedResolutionError",
    "DocumentParseError",
    "GraphInvariantError",
)


class SiteMapperError(Exception):
    """Base class for all SiteMapper errors."""


class UnsupportedProtocolError(SiteMapperError, ValueError):
    """A URL handed to resolution does not start with ``http://`` or ``https://``."""

    def __init__(self, url: str) -> None:
        super().__init__(f"URL has no http(s) protocol: {url!r}")
        self.url = url


class SeedResolutionError(SiteMapperError):
    """The crawl seed cannot be turned into a canonical URI."""


class DocumentParseError(SiteMapperError):
    """Fetched bytes could not be parsed into a document."""


class GraphInvariantError(SiteMapperError, RuntimeError):
    """A URI was claimed or completed twice."""
