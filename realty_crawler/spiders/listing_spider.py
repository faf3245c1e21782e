"""
Listing Spider - Walks the result pages of one listing search.

The provider crawler is picked from the search URL (see
realty_crawler.crawlers.registry). Each fetched page is handed to that
crawler, the resulting ads are yielded as AdItems, and the next page is
requested until a page comes back empty or max_pages is reached.

Usage:
    scrapy crawl listings -a url="http://www.wn-immo.de/suche?typ=miete"
    scrapy crawl listings -a url=... -a max_pages=3
"""

import time

import scrapy

from realty_crawler.crawlers import crawler_for_url
from realty_crawler.exceptions import ParseError
from realty_crawler.items import validate_item


class ListingSpider(scrapy.Spider):
    """Provider-agnostic spider over paginated search results."""

    name = 'listings'

    def __init__(self, url=None, max_pages=None, *args, **kwargs):
        super().__init__(*args, **kwargs)

        if not url:
            raise ValueError("ListingSpider needs a search url (-a url=...)")

        self.search_url = url.strip()
        self.provider = crawler_for_url(self.search_url)

        # Parse max_pages (None = unlimited)
        if max_pages is None or str(max_pages).lower() in ('none', '0', ''):
            self.max_pages = None
        else:
            try:
                self.max_pages = int(max_pages)
            except (ValueError, TypeError):
                self.logger.warning(f"[CONFIG] Invalid max_pages '{max_pages}', using unlimited")
                self.max_pages = None

        self.stats = {
            'total': 0,
            'pages': 0,
            'parse_errors': 0,
            'invalid': 0,
            'repeated_pages': 0,
            'start_time': time.time(),
        }

        # Ad ids yielded so far; a page with nothing new ends pagination
        self.seen_ids = set()

        self.logger.info("=" * 70)
        self.logger.info("LISTING SPIDER INITIALIZED")
        self.logger.info("=" * 70)
        self.logger.info(f"[CONFIG] Provider: {self.provider.name}")
        self.logger.info(f"[CONFIG] Search url: {self.search_url}")
        self.logger.info(f"[CONFIG] Max pages: {self.max_pages or 'unlimited'}")
        self.logger.info("=" * 70)

    @classmethod
    def from_crawler(cls, crawler, *args, **kwargs):
        kwargs.setdefault('max_pages', crawler.settings.get('MAX_PAGES'))
        return super().from_crawler(crawler, *args, **kwargs)

    def page_request(self, page):
        url = self.provider.prepare_link_for_page(self.search_url, page)
        return scrapy.Request(
            url,
            callback=self.parse_search,
            meta={'page': page, 'request_start': time.time()},
            dont_filter=True,
            errback=self.handle_error,
        )

    def start_requests(self):
        yield self.page_request(self.provider.get_first_page_index())

    def handle_error(self, failure):
        """Handle request failures."""
        page = failure.request.meta.get('page', '?')
        self.logger.error(f"[ERROR] Request failed for page {page}: {failure.value}")

    def parse_search(self, response):
        """Parse one result page."""
        page = response.meta['page']
        request_time = time.time() - response.meta.get('request_start', time.time())

        self.logger.info(
            f"[RESPONSE] {self.provider.name} p{page} | "
            f"Status: {response.status} | "
            f"Size: {len(response.body)/1024:.1f}KB | "
            f"Time: {request_time:.2f}s"
        )

        if response.status != 200:
            self.logger.warning(f"[HTTP-ERROR] p{page} returned status {response.status}")
            return

        try:
            ads = self.provider.parse_page(response.text)
        except ParseError as e:
            self.stats['parse_errors'] += 1
            self.logger.error(f"[PARSE-ERROR] {self.provider.name} p{page}: {e}")
            return

        self.stats['pages'] += 1

        parsed_count = 0
        fresh_ids = 0
        for ad in ads:
            if ad.id not in self.seen_ids:
                self.seen_ids.add(ad.id)
                fresh_ids += 1
            item = ad.to_item()
            is_valid, _ = validate_item(item, self.logger)
            if not is_valid:
                self.stats['invalid'] += 1
                continue
            parsed_count += 1
            yield item

        self.stats['total'] += parsed_count
        self.logger.info(
            f"[PAGE] {self.provider.name} p{page}: {parsed_count}/{len(ads)} ads | "
            f"Running total: {self.stats['total']}"
        )

        last_page = self.provider.get_first_page_index() + self.max_pages - 1 if self.max_pages else None
        if not ads:
            self.logger.info(f"[COMPLETE] No more results (stopped at page {page})")
        elif not fresh_ids:
            self.stats['repeated_pages'] += 1
            self.logger.info(f"[COMPLETE] Page {page} repeats earlier results, stopping")
        elif last_page is not None and page >= last_page:
            self.logger.info(f"[COMPLETE] Reached max pages ({self.max_pages})")
        else:
            self.logger.debug(f"[PAGINATION] Following to page {page + 1}")
            yield self.page_request(page + 1)

    def closed(self, reason):
        """Log summary when spider closes."""
        elapsed = time.time() - self.stats['start_time']

        self.logger.info("")
        self.logger.info("=" * 70)
        self.logger.info("LISTING SCRAPING COMPLETE")
        self.logger.info("=" * 70)
        self.logger.info(f"[SUMMARY] Reason: {reason}")
        self.logger.info(f"[SUMMARY] Duration: {elapsed:.1f}s")
        self.logger.info(f"[SUMMARY] Pages parsed: {self.stats['pages']}")
        self.logger.info(f"[SUMMARY] Total ads: {self.stats['total']}")
        self.logger.info(f"[SUMMARY] Parse errors: {self.stats['parse_errors']}")
        self.logger.info(f"[SUMMARY] Invalid items: {self.stats['invalid']}")
        self.logger.info(f"[SUMMARY] Repeated pages: {self.stats['repeated_pages']}")
        self.logger.info("=" * 70)
