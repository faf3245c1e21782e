"""Provider crawlers. Importing this package registers every provider."""

from realty_crawler.crawlers.base import Crawler
from realty_crawler.crawlers.registry import (
    CRAWLERS,
    crawler_for_url,
    find_crawler,
    get_all_crawlers,
    get_crawler,
    register_crawler,
)
from realty_crawler.crawlers.wn_immo import WnImmoCrawler

__all__ = [
    'Crawler',
    'CRAWLERS',
    'crawler_for_url',
    'find_crawler',
    'get_all_crawlers',
    'get_crawler',
    'register_crawler',
    'WnImmoCrawler',
]
