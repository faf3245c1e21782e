"""
Provider crawler interface.

One Crawler subclass per listing site. A crawler never fetches anything: the
caller hands it raw page markup and receives Ads. Pagination and URL
dispatch helpers live here too so the fetch loop stays provider-agnostic.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from lxml import etree
from parsel import Selector
from w3lib.url import add_or_replace_parameter

from realty_crawler.exceptions import MalformedMarkupError
from realty_crawler.items import Ad, PropertyKey


class Crawler(ABC):
    """Capability set every provider implements."""

    #: Identifying name, stamped on every ad as PROVIDER
    name: str = None

    #: Hosts this crawler understands (substring match)
    hosts: tuple = ()

    #: Page number of the first search result page
    first_page_index: int = 1

    #: Query parameter carrying the page number
    page_parameter: str = 'page'

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def supports_parsing(self, url: str) -> bool:
        """True if ``url`` belongs to one of this provider's hosts."""
        if not url:
            return False
        return any(host in url for host in self.hosts)

    @abstractmethod
    def preprocess_content(self, raw: str) -> str:
        """Repair raw page markup so it parses as well-formed XML."""

    @abstractmethod
    def parse_dom(self, markup: str) -> list[Ad]:
        """Map repaired markup to one Ad per listing."""

    def parse_page(self, raw: str) -> list[Ad]:
        """Preprocess and parse a fetched page in one step."""
        return self.parse_dom(self.preprocess_content(raw))

    def get_first_page_index(self) -> int:
        return self.first_page_index

    def prepare_link_for_page(self, base_link: str, page: int) -> str:
        """Build the URL of result page ``page`` from a search URL.

        The first page is the search URL itself. Other pages get the page
        parameter added, or replaced if the search URL already carries one.
        """
        base_link = base_link.strip()
        if page == self.get_first_page_index():
            return base_link
        return add_or_replace_parameter(base_link, self.page_parameter, str(page))

    # -- helpers for subclasses ---------------------------------------------

    def build_tree(self, markup: str) -> Selector:
        """Strictly parse repaired markup.

        Raises:
            MalformedMarkupError: the markup is not well-formed XML.
        """
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            root = etree.fromstring(markup.encode('utf-8'), parser=parser)
        except etree.XMLSyntaxError as e:
            self.logger.warning(f"[PARSE-ERROR] {self.name}: markup not well-formed: {e}")
            raise MalformedMarkupError(f"{self.name}: {e}") from e
        return Selector(root=root, type='xml')

    def stamp_batch(self, ads: list[Ad]) -> list[Ad]:
        """Give every ad of one page the same capture time and the provider name."""
        crawl_time = datetime.now(timezone.utc)
        for ad in ads:
            ad.put_property(PropertyKey.PROVIDER, self.name)
            ad.date_time = crawl_time
        return ads

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"
