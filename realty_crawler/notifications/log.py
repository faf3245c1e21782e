import logging
from typing import Mapping

from realty_crawler.items import Ad
from realty_crawler.notifications.base import Notification

logger = logging.getLogger(__name__)


class LogNotification(Notification):
    """Writes one summary line per new ad to the log."""

    def __init__(self, level=logging.INFO):
        self.level = level
        self.notified = 0

    @classmethod
    def from_settings(cls, settings):
        level = settings.get('NOTIFY_LOG_LEVEL', 'INFO')
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
        return cls(level=level)

    def notify_on_new_items(self, new_items: Mapping[str, Ad]) -> None:
        for ad in new_items.values():
            logger.log(self.level, f"[NOTIFY:Log] {ad.id} | {ad.to_summary()}")
        self.notified += len(new_items)
