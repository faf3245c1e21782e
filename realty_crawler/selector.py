"""
Structural selector for parsed listing markup.

Supports a deliberately small path language, evaluated relative to a node:

    //tag                 descendant axis
    /tag                  child axis
    tag[@name="value"]    one attribute-equality predicate per step
    /@name                trailing attribute extraction (yields values)

A leading "." is accepted and ignored, so ".//div/a" and "//div/a" mean the
same thing. Expressions are validated once, when a PathExpression is built,
and translated to the equivalent XPath which parsel evaluates.

Usage:
    >>> select('//div[@class="title-holder"]/a/@href', row).get()
    '/immobilien/123?ref=list'
"""

import re
from functools import lru_cache
from typing import NamedTuple, Optional

from lxml import etree
from parsel import Selector, SelectorList

from realty_crawler.exceptions import InvalidPathError

_NAME = r'[A-Za-z_][\w.\-]*'

STEP_RE = re.compile(
    rf'(//|/)({_NAME})'
    rf'(?:\[@({_NAME})=(?:"([^"]*)"|\'([^\']*)\')\])?'
)
ATTRIBUTE_RE = re.compile(rf'/@({_NAME})$')


class Step(NamedTuple):
    axis: str                   # '/' (child) or '//' (descendant)
    tag: str
    attribute: Optional[str] = None
    value: Optional[str] = None

    def to_xpath(self) -> str:
        xpath = f"{self.axis}{self.tag}"
        if self.attribute is not None:
            xpath += f"[@{self.attribute}={_quote(self.value)}]"
        return xpath


def _quote(value: str) -> str:
    # The grammar never allows a value to contain its own delimiter
    return f"'{value}'" if '"' in value else f'"{value}"'


class PathExpression:
    """A compiled, validated path expression."""

    def __init__(self, path: str):
        if not isinstance(path, str) or not path.strip():
            raise InvalidPathError(f"Empty path expression: {path!r}")

        self.path = path
        self.steps, self.attribute = self._parse(path.strip())
        self.xpath = '.' + ''.join(s.to_xpath() for s in self.steps)
        if self.attribute:
            self.xpath += f"/@{self.attribute}"

    @staticmethod
    def _parse(path: str):
        body = path[1:] if path.startswith('.') else path
        steps = []
        pos = 0

        while pos < len(body):
            attr = ATTRIBUTE_RE.match(body, pos)
            if attr:
                return tuple(steps), attr.group(1)

            match = STEP_RE.match(body, pos)
            if not match:
                raise InvalidPathError(
                    f"Unsupported syntax at position {pos} in {path!r}: {body[pos:]!r}"
                )
            axis, tag, attribute, dq_value, sq_value = match.groups()
            value = dq_value if dq_value is not None else sq_value
            steps.append(Step(axis, tag, attribute, value))
            pos = match.end()

        if not steps:
            raise InvalidPathError(f"Path selects nothing: {path!r}")
        return tuple(steps), None

    @property
    def selects_attribute(self) -> bool:
        return self.attribute is not None

    def __repr__(self):
        return f"PathExpression({self.path!r})"


@lru_cache(maxsize=256)
def compile_path(path: str) -> PathExpression:
    """Compile (and cache) a path expression."""
    return PathExpression(path)


def select(path, root) -> SelectorList:
    """Evaluate ``path`` against ``root``.

    Returns matching nodes in document order, or attribute-value
    pseudo-nodes for paths ending in ``/@name``. A missing root or a
    path without matches yields an empty list.
    """
    if root is None:
        return SelectorList([])
    if not isinstance(path, PathExpression):
        path = compile_path(path)
    return root.xpath(path.xpath)


def select_values(path, root) -> list[str]:
    """Like select(), but return the string value of every match."""
    return select(path, root).getall()


def first_text_token(node) -> Optional[str]:
    """Return the node's first content token if it is text.

    Whitespace-only text ahead of the first child is not content. If the
    first content token is an element or a comment, the result is None.
    Attribute and text pseudo-nodes are text themselves.
    """
    if node is None:
        return None

    el = node.root if isinstance(node, Selector) else node

    if isinstance(el, str):
        text = el.strip()
        return text or None

    if not isinstance(el, etree._Element) or callable(el.tag):
        # callable tag: comment or processing instruction
        return None

    text = (el.text or '').strip()
    return text or None
