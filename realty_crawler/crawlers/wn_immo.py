"""
wn-immo.de crawler - rental listings of the Westfälische Nachrichten portal.

The search result page is legacy, almost-XHTML table markup. Preprocessing
cuts the page down to the result table and patches the handful of defects
that keep it from parsing as XML (broken comment delimiters, raw
ampersands, HTML entities, a stray </tbody>). Each result row then maps to
one Ad.

Usage:
    >>> crawler = WnImmoCrawler()
    >>> ads = crawler.parse_page(html)
    >>> crawler.prepare_link_for_page(search_url, 2)
"""

import re
from html.entities import name2codepoint
from typing import Optional

from realty_crawler.crawlers.base import Crawler
from realty_crawler.crawlers.registry import register_crawler
from realty_crawler.exceptions import MissingAnchorError
from realty_crawler.items import Ad, PropertyKey, clean_text
from realty_crawler.selector import PathExpression, first_text_token, select
from realty_crawler.utils.url_validation import canonical_ad_id

# Entities XML knows without a DTD
XML_ENTITIES = ('amp', 'lt', 'gt', 'quot', 'apos')

AMPERSAND_RE = re.compile(r'&(#[0-9]+;|#x[0-9a-fA-F]+;|[A-Za-z][A-Za-z0-9]*;)?')
# Runs of five or more dashes; '<!---->' and '<!-- x -->' stay intact
BROKEN_COMMENT_OPEN_RE = re.compile(r'<!-{5,}(?![->])')
BROKEN_COMMENT_CLOSE_RE = re.compile(r'(?<![!-])-{5,}>')


def _escape_ampersand(match) -> str:
    ref = match.group(1)
    if ref is None:
        return '&amp;'
    if ref.startswith('#'):
        return match.group(0)

    name = ref[:-1]
    if name in XML_ENTITIES:
        return match.group(0)
    if name in name2codepoint:
        return f'&#{name2codepoint[name]};'
    return f'&amp;{ref}'


def escape_ampersands(markup: str) -> str:
    """Escape raw '&' and turn HTML named entities into character references."""
    return AMPERSAND_RE.sub(_escape_ampersand, markup)


def repair_comments(markup: str) -> str:
    """'<!-------' -> '<!--' and '------>' -> '-->'."""
    markup = BROKEN_COMMENT_OPEN_RE.sub('<!--', markup)
    return BROKEN_COMMENT_CLOSE_RE.sub('-->', markup)


def strip_orphan_closing_tags(markup: str, tags) -> str:
    """Remove closing tags whose opening tag never occurs."""
    for tag in tags:
        if f'<{tag}' not in markup:
            markup = markup.replace(f'</{tag}>', '')
    return markup


@register_crawler
class WnImmoCrawler(Crawler):
    """Crawler for wn-immo.de search result pages."""

    name = 'wn-immo'
    hosts = ('wn-immo.de',)
    base_url = 'http://www.wn-immo.de'
    first_page_index = 1

    # Preprocessing markers
    CONTAINER_MARKER = 'class="searchresults-list"'
    CONTAINER_LOOKBEHIND = 70
    BODY_END_MARKER = '</body'
    ENTRY_END_MARKER = 'ende listEntry'
    TABLE_END = '</table>'
    ORPHAN_CLOSING_TAGS = ('tbody',)

    # Paths, relative to the result table / one result row
    LISTING_PATH = PathExpression('/tr')
    PERMALINK_PATH = PathExpression('//div[@class="title-holder"]/a/@href')
    FEATURE_PATH = PathExpression('//div[@class="feature-tags"]/span')
    SPEC_ROW_PATH = PathExpression('//div[@class="spec-table-wrapper"]//tr')
    SPEC_CELL_PATH = PathExpression('//td')
    IMAGE_LINK_PATH = PathExpression('//div[@class="image-wrapper"]//a')
    IMAGE_SRC_PATH = PathExpression('//img/@src')
    SELLER_PATH = PathExpression('//td[@class="sellername-wrapper"]//div')

    VALUE_CELL_CLASS = 'spec-value-small'

    # (label, key, exact) - first match wins
    SPEC_LABELS = (
        ('Kaltmiete', PropertyKey.PRICE, True),
        ('Zimmer', PropertyKey.ROOMS, False),
        ('fläche', PropertyKey.SPACE, False),
        ('Ort', PropertyKey.LOCATION, False),
        ('Verfügbar', PropertyKey.AVAILABLE_FROM, False),
    )

    # -- preprocessing ------------------------------------------------------

    def preprocess_content(self, raw: str) -> str:
        marker = raw.rfind(self.CONTAINER_MARKER)
        if marker == -1:
            raise MissingAnchorError(self.CONTAINER_MARKER, self.name)

        table_start = raw.find('<table', max(0, marker - self.CONTAINER_LOOKBEHIND))
        if table_start == -1:
            raise MissingAnchorError('<table', self.name)
        markup = raw[table_start:]

        body_end = markup.rfind(self.BODY_END_MARKER)
        if body_end != -1:
            markup = markup[:body_end]

        markup = markup[:self._table_end(markup)]

        markup = repair_comments(markup)
        markup = escape_ampersands(markup)
        markup = strip_orphan_closing_tags(markup, self.ORPHAN_CLOSING_TAGS)
        return markup

    def _table_end(self, markup: str) -> int:
        last_entry = markup.rfind(self.ENTRY_END_MARKER)
        if last_entry != -1:
            end = markup.find(self.TABLE_END, last_entry)
        else:
            # No listings on this page
            end = markup.rfind(self.TABLE_END)

        if end == -1:
            raise MissingAnchorError(self.TABLE_END, self.name)
        return end + len(self.TABLE_END)

    # -- parsing ------------------------------------------------------------

    def parse_dom(self, markup: str) -> list[Ad]:
        tree = self.build_tree(markup)
        rows = select(self.LISTING_PATH, tree)

        ads = []
        for row in rows:
            ad = self.parse_listing(row)
            if ad is not None:
                ads.append(ad)

        self.stamp_batch(ads)
        self.logger.info(f"[PARSE] {self.name}: {len(ads)}/{len(rows)} rows mapped to ads")
        return ads

    def parse_listing(self, row) -> Optional[Ad]:
        """Map one result row to an Ad; None if the row has no permalink."""
        href = select(self.PERMALINK_PATH, row).get()
        ad_id = canonical_ad_id(href, self.base_url)
        if not ad_id:
            self.logger.warning(f"[VALIDATION] {self.name}: row without permalink skipped")
            return None

        ad = Ad.for_id(ad_id)
        ad.source_node = row

        ad.feature_list = self.parse_features(row)
        self.parse_specs(row, ad)
        ad.put_property(PropertyKey.IMAGE, self.parse_image(row))
        ad.put_property(PropertyKey.SELLER_TYPE, self.parse_seller(row))
        return ad

    def parse_features(self, row) -> list[str]:
        features = []
        for tag in select(self.FEATURE_PATH, row):
            text = first_text_token(tag)
            if text:
                features.append(clean_text(text))
        return features

    def parse_specs(self, row, ad: Ad) -> None:
        """Read label/value pairs from the spec table into ``ad``.

        The value cell is the one carrying the spec-value-small class; the
        other cell is the label, whichever comes first.
        """
        for spec_row in select(self.SPEC_ROW_PATH, row):
            label = None
            value = None
            for cell in select(self.SPEC_CELL_PATH, spec_row):
                text = clean_text(first_text_token(cell))
                if self.VALUE_CELL_CLASS in (cell.attrib.get('class') or ''):
                    value = text
                else:
                    label = text

                if label and value:
                    key = self.key_for_label(label)
                    if key is not None:
                        ad.put_property(key, value)

    def key_for_label(self, label: str) -> Optional[PropertyKey]:
        for keyword, key, exact in self.SPEC_LABELS:
            if (label == keyword) if exact else (keyword in label):
                return key
        return None

    def parse_image(self, row) -> Optional[str]:
        for link in select(self.IMAGE_LINK_PATH, row):
            for src in select(self.IMAGE_SRC_PATH, link).getall():
                if src and src.strip():
                    return src.strip()
        return None

    def parse_seller(self, row) -> Optional[str]:
        wrappers = select(self.SELLER_PATH, row)
        if not wrappers:
            return None
        return clean_text(first_text_token(wrappers[0]))
