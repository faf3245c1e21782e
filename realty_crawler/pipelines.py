"""
Scrapy pipelines for ad items.

Pipelines:
1. DuplicateFilterPipeline - Drop ads already yielded in this run
2. NewAdsPipeline - Diff against the seen store, notify sinks about new ads

The crawlers only extract; everything stateful (what was seen before, who
gets told) happens here, once per spider run.
"""

import logging
import os
import time

from itemadapter import ItemAdapter
from scrapy.exceptions import DropItem
from scrapy.utils.misc import load_object

from realty_crawler.exceptions import NotificationError
from realty_crawler.items import Ad
from realty_crawler.storage import SeenStore

logger = logging.getLogger(__name__)


def build_sink(path_or_class, settings):
    """Instantiate a notification sink from a dotted path or class."""
    cls = load_object(path_or_class) if isinstance(path_or_class, str) else path_or_class
    if hasattr(cls, 'from_settings'):
        return cls.from_settings(settings)
    return cls()


class DuplicateFilterPipeline:
    """Filter duplicate ads by provider + id."""

    def __init__(self):
        self.seen = set()
        self.duplicates_filtered = 0

    def open_spider(self, spider):
        logger.info("[PIPELINE:Dedupe] Initialized - tracking provider:id pairs")

    def process_item(self, item, spider):
        adapter = ItemAdapter(item)
        key = f"{adapter.get('provider', '')}:{adapter.get('id', '')}"

        if key in self.seen:
            self.duplicates_filtered += 1
            logger.debug(f"[PIPELINE:Dedupe] Filtered duplicate: {key}")
            raise DropItem(f"Duplicate item: {key}")

        self.seen.add(key)
        return item

    def close_spider(self, spider):
        logger.info(
            f"[PIPELINE:Dedupe] Complete - {len(self.seen)} unique, "
            f"{self.duplicates_filtered} duplicates filtered"
        )


class NewAdsPipeline:
    """Collect ads not in the seen store and hand them to notification sinks.

    Sinks are called once, when the spider closes, with a mapping of ad id
    to Ad. New ids are written to the store afterwards, and only if every
    sink delivered, so a failed delivery is retried on the next run.
    """

    def __init__(self, db_path, sink_paths=(), settings=None):
        self.db_path = db_path
        self.sink_paths = list(sink_paths)
        self.settings = settings
        self.store = None
        self.sinks = []
        self.seen = {}          # provider -> ids known before this run
        self.new_ads = {}       # provider -> {id: Ad}
        self.start_time = None

    @classmethod
    def from_crawler(cls, crawler):
        settings = crawler.settings
        output_dir = settings.get('OUTPUT_DIR', 'output')
        db_path = settings.get('SEEN_DB_PATH') or os.path.join(output_dir, 'seen.db')
        return cls(db_path, settings.getlist('NOTIFICATION_SINKS'), settings)

    def open_spider(self, spider):
        self.store = SeenStore(self.db_path).open()
        self.sinks = [build_sink(path, self.settings) for path in self.sink_paths]
        self.start_time = time.time()
        logger.info(f"[PIPELINE:NewAds] Initialized - {self.db_path}")
        logger.info(f"[PIPELINE:NewAds] Existing seen ads: {self.store.count()}")
        logger.info(f"[PIPELINE:NewAds] Sinks: {', '.join(type(s).__name__ for s in self.sinks) or 'none'}")

    def _seen_for(self, provider):
        if provider not in self.seen:
            self.seen[provider] = self.store.load_seen(provider)
        return self.seen[provider]

    def process_item(self, item, spider):
        adapter = ItemAdapter(item)
        provider = adapter.get('provider')
        ad_id = adapter.get('id')

        if ad_id not in self._seen_for(provider):
            batch = self.new_ads.setdefault(provider, {})
            if ad_id not in batch:
                batch[ad_id] = Ad.from_item(item)
                logger.debug(f"[PIPELINE:NewAds] New ad: {ad_id}")

        return item

    def dispatch(self, new_items) -> bool:
        """Send the batch to every sink; True if all of them delivered."""
        delivered = True
        for sink in self.sinks:
            try:
                sink.notify_on_new_items(new_items)
            except NotificationError as e:
                delivered = False
                logger.error(f"[PIPELINE:NewAds] {type(sink).__name__} failed: {e}")
        return delivered

    def shutdown_sinks(self):
        """Shut every sink down, even if an earlier one fails."""
        for sink in self.sinks:
            try:
                sink.shutdown()
            except Exception as e:
                logger.error(f"[PIPELINE:NewAds] {type(sink).__name__} shutdown failed: {e}")

    def close_spider(self, spider):
        new_items = {}
        try:
            for batch in self.new_ads.values():
                new_items.update(batch)

            if new_items:
                if self.dispatch(new_items):
                    for provider, batch in self.new_ads.items():
                        self.store.mark_seen(provider, batch.keys())
                else:
                    logger.warning(
                        f"[PIPELINE:NewAds] Delivery incomplete - {len(new_items)} ads stay unseen"
                    )
        finally:
            try:
                self.shutdown_sinks()
            finally:
                self.store.close()

        elapsed = time.time() - self.start_time if self.start_time else 0
        logger.info(
            f"[PIPELINE:NewAds] Complete - {len(new_items)} new ads in {elapsed:.1f}s"
        )
