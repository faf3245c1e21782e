"""
URL helpers for listing permalinks and search pages.

Ad ids are canonical permalinks: absolute, with the query string removed, so
the same listing reached through different search pages (tracking
parameters, page numbers) dedups to one id.
"""

from typing import Optional
from urllib.parse import urljoin, urlparse


def validate_url(url: str, base_url: str = None) -> Optional[str]:
    """Validate and normalize a URL.

    Args:
        url: URL string to validate (can be relative if base_url provided)
        base_url: Optional base URL for resolving relative URLs

    Returns:
        Validated absolute URL or None if invalid

    Example:
        >>> validate_url("/immobilien/123", "http://www.wn-immo.de")
        'http://www.wn-immo.de/immobilien/123'
        >>> validate_url("javascript:void(0)")
        None
    """
    if not url or not isinstance(url, str):
        return None

    url = url.strip()
    if not url:
        return None

    if base_url and not url.startswith(('http://', 'https://')):
        url = urljoin(base_url, url)

    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        return None
    if not parsed.netloc:
        return None

    return url


def strip_query(url: str) -> str:
    """Drop everything from the first '?' on."""
    return url.split('?', 1)[0]


def canonical_ad_id(href: str, base_url: str = None) -> Optional[str]:
    """Turn a listing link into the ad id used for deduplication.

    Example:
        >>> canonical_ad_id("/immobilien/123?ref=xyz", "http://www.wn-immo.de")
        'http://www.wn-immo.de/immobilien/123'
    """
    url = validate_url(href, base_url)
    if not url:
        return None
    return strip_query(url)
