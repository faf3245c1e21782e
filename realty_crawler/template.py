"""
HTML template used to render ads for notifications.

The bundled template is read from package data on first use and cached for
the lifetime of the process. It is never modified after loading, so
concurrent readers need no further locking.
"""

import logging
import pkgutil
import re
import threading
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

TEMPLATE_RESOURCE = 'templates/ad-template.html'
PLACEHOLDER_RE = re.compile(r'\$\{([A-Z_]+)\}')

_template: Optional[str] = None
_template_lock = threading.Lock()


def _load_template() -> str:
    data = pkgutil.get_data('realty_crawler', TEMPLATE_RESOURCE)
    if data is None:
        raise FileNotFoundError(f"Template resource missing: {TEMPLATE_RESOURCE}")
    return data.decode('utf-8')


def get_template() -> str:
    """Return the bundled ad template, loading it on first call."""
    global _template
    if _template is None:
        with _template_lock:
            if _template is None:
                _template = _load_template()
                logger.debug(f"[TEMPLATE] Loaded {TEMPLATE_RESOURCE} ({len(_template)} chars)")
    return _template


def render_template(template: str, properties: Mapping) -> str:
    """Substitute ``${KEY}`` placeholders with property values.

    ``properties`` maps PropertyKey members (or their names) to text.
    Placeholders without a value stay in the output unchanged. Substitution
    is a single pass, so values containing placeholder syntax are inserted
    literally.
    """
    values = {getattr(key, 'name', key): value for key, value in properties.items()}

    def _substitute(match):
        value = values.get(match.group(1))
        return match.group(0) if value is None else value

    return PLACEHOLDER_RE.sub(_substitute, template)
