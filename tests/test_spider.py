#!/usr/bin/env python3
"""Tests for ListingSpider: page flow, pagination limits and parse failures."""

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

import scrapy
from scrapy.http import HtmlResponse, Request

sys.path.insert(0, str(Path(__file__).parent.parent))
from realty_crawler.crawlers import WnImmoCrawler
from realty_crawler.exceptions import UnsupportedUrlError
from realty_crawler.items import AdItem
from realty_crawler.spiders.listing_spider import ListingSpider


def make_response(url, body, page=1, status=200):
    request = Request(url, meta={'page': page})
    return HtmlResponse(url=url, body=body.encode('utf-8'), encoding='utf-8',
                        request=request, status=status)


def split_results(results):
    items = [r for r in results if isinstance(r, AdItem)]
    requests = [r for r in results if isinstance(r, scrapy.Request)]
    return items, requests


class TestSpiderInit:
    def test_resolves_provider(self, search_url):
        spider = ListingSpider(url=search_url)
        assert isinstance(spider.provider, WnImmoCrawler)
        assert spider.max_pages is None

    def test_requires_url(self):
        with pytest.raises(ValueError):
            ListingSpider()

    def test_unsupported_url(self):
        with pytest.raises(UnsupportedUrlError):
            ListingSpider(url="http://www.example.com/search")

    @pytest.mark.parametrize('raw,expected', [('3', 3), ('0', None), ('none', None), ('abc', None)])
    def test_max_pages_parsing(self, search_url, raw, expected):
        assert ListingSpider(url=search_url, max_pages=raw).max_pages == expected

    def test_start_request_is_first_page(self, search_url):
        spider = ListingSpider(url=search_url)
        requests = list(spider.start_requests())
        assert len(requests) == 1
        assert requests[0].url == search_url
        assert requests[0].meta['page'] == 1


class TestParseSearch:
    def test_yields_items_and_next_page(self, search_url, make_page, make_row):
        spider = ListingSpider(url=search_url)
        response = make_response(search_url, make_page([make_row("1"), make_row("2")]))

        items, requests = split_results(list(spider.parse_search(response)))

        assert [item['id'] for item in items] == [
            "http://www.wn-immo.de/immobilien/1",
            "http://www.wn-immo.de/immobilien/2",
        ]
        assert all(item['provider'] == "wn-immo" for item in items)
        assert len(requests) == 1
        assert requests[0].url == search_url + "&page=2"
        assert requests[0].meta['page'] == 2
        assert spider.stats['total'] == 2

    def test_empty_page_stops(self, search_url, make_page):
        spider = ListingSpider(url=search_url)
        response = make_response(search_url + "&page=4", make_page([]), page=4)

        items, requests = split_results(list(spider.parse_search(response)))

        assert items == []
        assert requests == []

    def test_max_pages_stops(self, search_url, make_page, make_row):
        spider = ListingSpider(url=search_url, max_pages=2)
        response = make_response(search_url + "&page=2", make_page([make_row()]), page=2)

        items, requests = split_results(list(spider.parse_search(response)))

        assert len(items) == 1
        assert requests == []

    def test_repeated_last_page_stops(self, search_url, make_page, make_row):
        spider = ListingSpider(url=search_url)
        last = make_page([make_row("8"), make_row("9")])

        _, requests = split_results(list(spider.parse_search(make_response(search_url, last))))
        assert len(requests) == 1

        # past the end the site serves the last page again
        repeat = make_response(search_url + "&page=2", last, page=2)
        items, requests = split_results(list(spider.parse_search(repeat)))

        assert len(items) == 2
        assert requests == []
        assert spider.stats['repeated_pages'] == 1

    def test_partly_new_page_continues(self, search_url, make_page, make_row):
        spider = ListingSpider(url=search_url)
        list(spider.parse_search(make_response(search_url, make_page([make_row("1")]))))

        page2 = make_response(search_url + "&page=2", make_page([make_row("1"), make_row("2")]), page=2)
        _, requests = split_results(list(spider.parse_search(page2)))
        assert [r.meta['page'] for r in requests] == [3]

    def test_parse_error_abandons_page(self, search_url):
        spider = ListingSpider(url=search_url)
        response = make_response(search_url, "<html><body>Wartungsarbeiten</body></html>")

        assert list(spider.parse_search(response)) == []
        assert spider.stats['parse_errors'] == 1

    def test_malformed_page_abandoned(self, search_url, make_page, make_row):
        spider = ListingSpider(url=search_url)
        page = make_page([make_row("1"), make_row("2", extra="<br>")])

        assert list(spider.parse_search(make_response(search_url, page))) == []
        assert spider.stats['parse_errors'] == 1

    def test_non_200_ignored(self, search_url, make_page, make_row):
        spider = ListingSpider(url=search_url)
        response = make_response(search_url, make_page([make_row()]), status=503)

        assert list(spider.parse_search(response)) == []


class TestSpiderLifecycle:
    def test_handle_error_logs(self, search_url):
        spider = ListingSpider(url=search_url)
        failure = MagicMock()
        failure.request.meta = {'page': 3}
        spider.handle_error(failure)

    def test_closed_summary(self, search_url):
        spider = ListingSpider(url=search_url)
        spider.closed('finished')
