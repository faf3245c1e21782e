"""
Canonical ad model and the Scrapy item it is exported as.

Every provider crawler produces Ad objects. Ads are converted to AdItem when
they travel through Scrapy's item pipelines and feed exports, and back again
when a notification sink needs the rendering methods.
"""

import html
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import scrapy

from realty_crawler.template import get_template, render_template


class PropertyKey(Enum):
    """Closed set of canonical ad properties."""
    LOCATION = "LOCATION"
    SPACE = "SPACE"
    ROOMS = "ROOMS"
    PRICE = "PRICE"
    FEATURES = "FEATURES"
    AVAILABLE_FROM = "AVAILABLE_FROM"
    SELLER_TYPE = "SELLER_TYPE"
    IMAGE = "IMAGE"
    DATETIME = "DATETIME"
    ID = "ID"
    PROVIDER = "PROVIDER"


# Keys maintained by Ad itself, never written through put_property()
MANAGED_KEYS = (PropertyKey.ID, PropertyKey.DATETIME, PropertyKey.FEATURES)

FEATURE_SEP = ', '


def clean_text(value):
    """Collapse runs of whitespace."""
    if value:
        return ' '.join(value.split())
    return value


class Ad:
    """One listing snapshot.

    ``id`` is fixed at construction. ``properties`` is a read-only view;
    write through put_property(), the ``feature_list`` setter and the
    ``date_time`` setter so ID, DATETIME and FEATURES stay in sync.

    ``source_node`` points at the markup the ad was extracted from. It is
    for diagnostics only and is ignored by equality, hashing, repr and
    serialization.
    """

    SEP = '; '

    SUMMARY_KEYS = (
        PropertyKey.LOCATION,
        PropertyKey.SPACE,
        PropertyKey.ROOMS,
        PropertyKey.PRICE,
        PropertyKey.FEATURES,
        PropertyKey.AVAILABLE_FROM,
        PropertyKey.SELLER_TYPE,
        PropertyKey.IMAGE,
    )

    def __init__(self, ad_id: str, date_time: Optional[datetime] = None):
        if not ad_id:
            raise ValueError("Ad id must not be empty")

        self._id = ad_id
        self._properties = {PropertyKey.ID: ad_id}
        self._feature_list: list[str] = []
        self._date_time = None
        self.source_node = None

        self.date_time = date_time or datetime.now(timezone.utc)

    @classmethod
    def for_id(cls, ad_id: str) -> 'Ad':
        """Create an ad stamped with the current time."""
        return cls(ad_id)

    # -- identity and properties ------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def properties(self) -> Mapping[PropertyKey, str]:
        return MappingProxyType(self._properties)

    def get(self, key: PropertyKey, default=None):
        return self._properties.get(key, default)

    def put_property(self, key: PropertyKey, value: Optional[str]) -> None:
        """Set a property; None or an empty string unsets it."""
        if not isinstance(key, PropertyKey):
            raise TypeError(f"Expected PropertyKey, got {key!r}")
        if key in MANAGED_KEYS:
            raise ValueError(f"{key.name} is maintained by the ad itself")

        if value is None or value == '':
            self._properties.pop(key, None)
        else:
            self._properties[key] = value

    @property
    def feature_list(self) -> list[str]:
        return list(self._feature_list)

    @feature_list.setter
    def feature_list(self, features: Optional[Iterable[str]]) -> None:
        self._feature_list = list(features or [])
        if self._feature_list:
            self._properties[PropertyKey.FEATURES] = FEATURE_SEP.join(self._feature_list)
        else:
            self._properties.pop(PropertyKey.FEATURES, None)

    @property
    def date_time(self) -> datetime:
        return self._date_time

    @date_time.setter
    def date_time(self, value: datetime) -> None:
        self._date_time = value
        self._properties[PropertyKey.DATETIME] = value.isoformat()

    # -- rendering ----------------------------------------------------------

    def to_summary(self) -> str:
        """Plain-text, fixed-order summary. Absent values render empty."""
        return self.SEP.join(self._properties.get(key, '') for key in self.SUMMARY_KEYS)

    def to_html(self, template: Optional[str] = None) -> str:
        """Render the ad into the HTML template.

        Values are HTML-escaped. Placeholders of properties the ad does not
        have are left as-is.
        """
        escaped = {key: html.escape(value) for key, value in self._properties.items()}
        return render_template(template if template is not None else get_template(), escaped)

    def __str__(self):
        return self.to_summary()

    def __repr__(self):
        props = {k.name: v for k, v in self._properties.items()}
        return f"Ad(id={self._id!r}, properties={props!r})"

    def __eq__(self, other):
        if not isinstance(other, Ad):
            return NotImplemented
        return (
            self._id == other._id
            and self._properties == other._properties
            and self._feature_list == other._feature_list
        )

    def __hash__(self):
        return hash(self._id)

    def __getstate__(self):
        state = self.__dict__.copy()
        state['source_node'] = None
        return state

    # -- conversion ---------------------------------------------------------

    def to_dict(self) -> dict:
        """JSON-serializable representation (without the source node)."""
        return {
            'id': self._id,
            'properties': {k.name: v for k, v in self._properties.items()},
            'feature_list': list(self._feature_list),
        }

    def to_item(self) -> 'AdItem':
        item = AdItem()
        for key, value in self._properties.items():
            item[key.name.lower()] = value
        item['feature_list'] = list(self._feature_list)
        return item

    @classmethod
    def from_item(cls, item) -> 'Ad':
        """Rebuild an ad from an AdItem (or any mapping with the same keys)."""
        data = dict(item)
        stamp = data.get('datetime')
        ad = cls(data['id'], date_time=datetime.fromisoformat(stamp) if stamp else None)
        ad.feature_list = data.get('feature_list') or []

        for key in PropertyKey:
            if key in MANAGED_KEYS:
                continue
            value = data.get(key.name.lower())
            if value:
                ad.put_property(key, value)
        return ad


class AdItem(scrapy.Item):
    """Export form of an Ad: one field per PropertyKey plus the raw feature list."""

    id = scrapy.Field()
    provider = scrapy.Field()
    datetime = scrapy.Field()

    location = scrapy.Field()
    space = scrapy.Field()
    rooms = scrapy.Field()
    price = scrapy.Field()
    available_from = scrapy.Field()
    seller_type = scrapy.Field()
    image = scrapy.Field()

    features = scrapy.Field()       # comma-joined rendering of feature_list
    feature_list = scrapy.Field()


def validate_item(item, logger=None) -> tuple[bool, list[str]]:
    """Check an AdItem before it leaves the spider.

    Returns:
        (is_valid, list_of_issues) tuple. Only a missing id or provider
        makes an item invalid; the other issues are logged as warnings.
    """
    issues = []
    data = dict(item) if hasattr(item, 'items') else item

    if not data.get('id'):
        issues.append('missing id')
    elif not str(data['id']).startswith('http'):
        issues.append(f"id is not an absolute url ({str(data['id'])[:30]}...)")

    if not data.get('provider'):
        issues.append('missing provider')

    if not data.get('price'):
        issues.append('missing price')
    if not data.get('location'):
        issues.append('missing location')

    is_valid = not any(i in ('missing id', 'missing provider') for i in issues)

    if issues and logger:
        ad_id = data.get('id', 'unknown')
        logger.warning(f"[VALIDATION] {ad_id}: {', '.join(issues)}")

    return is_valid, issues
