"""Provider registry: maps provider names to crawler classes.

New providers register themselves with @register_crawler; the dispatcher
asks each registered crawler whether it supports a URL instead of keeping
its own host table.
"""

from typing import Optional

from realty_crawler.exceptions import UnsupportedUrlError

CRAWLERS: dict = {}


def register_crawler(cls):
    """Class decorator adding a Crawler subclass to the registry."""
    if not cls.name:
        raise ValueError(f"{cls.__name__} has no provider name")
    if cls.name in CRAWLERS and CRAWLERS[cls.name] is not cls:
        raise ValueError(f"Provider {cls.name!r} already registered by {CRAWLERS[cls.name].__name__}")
    CRAWLERS[cls.name] = cls
    return cls


def get_crawler(name: str):
    """Get a crawler instance by provider name, or None."""
    cls = CRAWLERS.get(name.lower()) if name else None
    return cls() if cls else None


def get_all_crawlers() -> list:
    """Instances of all registered crawlers, sorted by name."""
    return [CRAWLERS[name]() for name in sorted(CRAWLERS)]


def find_crawler(url: str) -> Optional[object]:
    """First registered crawler that supports ``url``, or None."""
    for crawler in get_all_crawlers():
        if crawler.supports_parsing(url):
            return crawler
    return None


def crawler_for_url(url: str):
    """Like find_crawler(), but raise when no provider matches.

    Raises:
        UnsupportedUrlError: no registered crawler supports ``url``.
    """
    crawler = find_crawler(url)
    if crawler is None:
        raise UnsupportedUrlError(f"No crawler supports {url!r} (known: {', '.join(sorted(CRAWLERS))})")
    return crawler
