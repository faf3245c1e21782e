#!/usr/bin/env python3
"""Tests for the path expression selector."""

import pytest
import sys
from pathlib import Path

from parsel import Selector

sys.path.insert(0, str(Path(__file__).parent.parent))
from realty_crawler.exceptions import InvalidPathError
from realty_crawler.selector import (
    PathExpression,
    compile_path,
    first_text_token,
    select,
    select_values,
)

DOC = """<root>
  <div class="title-holder"><a href="/immobilien/1">Eins</a></div>
  <div class="other"><a href="/impressum">Impressum</a></div>
  <div class="title-holder"><a href="/immobilien/2">Zwei</a></div>
  <ul><li>  <b>fett</b> danach</li><li><!-- kommentar -->text</li><li> 800 EUR </li></ul>
</root>"""


@pytest.fixture
def doc():
    return Selector(text=DOC, type='xml')


class TestPathExpression:
    def test_translates_to_relative_xpath(self):
        path = PathExpression('//div[@class="title-holder"]/a/@href')
        assert path.xpath == './/div[@class="title-holder"]/a/@href'
        assert path.attribute == 'href'
        assert path.selects_attribute

    def test_leading_dot_ignored(self):
        assert PathExpression('.//div/a').xpath == PathExpression('//div/a').xpath

    def test_single_quoted_predicate(self):
        path = PathExpression("//td[@class='sellername-wrapper']//div")
        assert path.steps[0].attribute == 'class'
        assert path.steps[0].value == 'sellername-wrapper'
        assert not path.selects_attribute

    def test_attribute_only_path(self):
        assert PathExpression('/@src').xpath == './@src'

    @pytest.mark.parametrize('bad', [
        '',
        '   ',
        'div',
        '//div[1]',
        '//div[@class=x]',
        '//div/@href/span',
        '//div[@class="a" and @id="b"]',
        '//*',
    ])
    def test_rejects_unsupported_syntax(self, bad):
        with pytest.raises(InvalidPathError):
            PathExpression(bad)

    def test_invalid_path_is_value_error(self):
        with pytest.raises(ValueError):
            PathExpression('div')

    def test_compile_is_cached(self):
        assert compile_path('//li') is compile_path('//li')


class TestSelect:
    def test_document_order(self, doc):
        links = select('//div[@class="title-holder"]/a', doc)
        assert [a.root.text for a in links] == ['Eins', 'Zwei']

    def test_attribute_values(self, doc):
        assert select_values('//div[@class="title-holder"]/a/@href', doc) == [
            '/immobilien/1',
            '/immobilien/2',
        ]

    def test_child_axis_is_direct(self, doc):
        assert len(select('/div', doc)) == 3
        assert len(select('/a', doc)) == 0

    def test_none_root(self):
        assert len(select('//div', None)) == 0
        assert select_values('//a/@href', None) == []

    def test_no_match(self, doc):
        assert select('//table', doc).get() is None

    def test_accepts_compiled_path(self, doc):
        path = PathExpression('//ul/li')
        assert len(select(path, doc)) == 3


class TestFirstTextToken:
    def test_text_is_stripped(self, doc):
        items = select('//li', doc)
        assert first_text_token(items[2]) == '800 EUR'

    def test_whitespace_before_element_is_not_content(self, doc):
        items = select('//li', doc)
        assert first_text_token(items[0]) is None

    def test_comment_first(self, doc):
        items = select('//li', doc)
        assert first_text_token(items[1]) is None

    def test_attribute_node(self, doc):
        href = select('//div[@class="other"]/a/@href', doc)[0]
        assert first_text_token(href) == '/impressum'

    def test_none(self):
        assert first_text_token(None) is None
