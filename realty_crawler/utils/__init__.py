# realty_crawler/utils/__init__.py
"""Utility modules for listing extraction."""

from .url_validation import (
    validate_url,
    strip_query,
    canonical_ad_id,
)

__all__ = [
    'validate_url',
    'strip_query',
    'canonical_ad_id',
]
