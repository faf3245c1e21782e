"""Per-site extraction of real-estate listing ads."""

from realty_crawler.items import Ad, AdItem, PropertyKey

__all__ = ['Ad', 'AdItem', 'PropertyKey']
