# Scrapy settings for realty_crawler project
#
# Polls listing searches politely and reports ads that were not seen
# before. SMTP credentials come from the environment.

import os

BOT_NAME = 'realty_crawler'

SPIDER_MODULES = ['realty_crawler.spiders']
NEWSPIDER_MODULE = 'realty_crawler.spiders'

USER_AGENT = 'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'

ROBOTSTXT_OBEY = True

# =============================================================================
# CONCURRENCY SETTINGS
# =============================================================================

# Result pages are followed one after another anyway
CONCURRENT_REQUESTS = 4
CONCURRENT_REQUESTS_PER_DOMAIN = 1

DOWNLOAD_DELAY = 3
RANDOMIZE_DOWNLOAD_DELAY = True

AUTOTHROTTLE_ENABLED = True
AUTOTHROTTLE_START_DELAY = 3
AUTOTHROTTLE_MAX_DELAY = 30
AUTOTHROTTLE_TARGET_CONCURRENCY = 1.0

# =============================================================================
# RETRY SETTINGS
# =============================================================================

RETRY_ENABLED = True
RETRY_TIMES = 3
RETRY_HTTP_CODES = [500, 502, 503, 504, 408, 429]

# =============================================================================
# CACHING (development only - a cached page never shows new ads)
# =============================================================================

HTTPCACHE_ENABLED = False
HTTPCACHE_EXPIRATION_SECS = 3600
HTTPCACHE_DIR = 'httpcache'

# =============================================================================
# ITEM PIPELINES
# =============================================================================

ITEM_PIPELINES = {
    'realty_crawler.pipelines.DuplicateFilterPipeline': 200,
    'realty_crawler.pipelines.NewAdsPipeline': 400,
}

# =============================================================================
# OUTPUT / STATE
# =============================================================================

FEED_EXPORT_ENCODING = 'utf-8'

OUTPUT_DIR = os.environ.get('REALTY_OUTPUT_DIR', 'output')
SEEN_DB_PATH = os.environ.get('REALTY_SEEN_DB_PATH')  # default: OUTPUT_DIR/seen.db

# Result pages per search (None = until a page has no ads)
MAX_PAGES = None

# =============================================================================
# NOTIFICATIONS
# =============================================================================

NOTIFICATION_SINKS = [
    'realty_crawler.notifications.LogNotification',
]
if os.environ.get('SMTP_HOST'):
    NOTIFICATION_SINKS.append('realty_crawler.notifications.EmailNotification')

NOTIFY_LOG_LEVEL = 'INFO'

SMTP_HOST = os.environ.get('SMTP_HOST')
SMTP_PORT = int(os.environ.get('SMTP_PORT', '587'))
SMTP_USER = os.environ.get('SMTP_USER')
SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD')
SMTP_USE_TLS = os.environ.get('SMTP_USE_TLS', 'true').lower() in ('true', '1', 'yes')
NOTIFY_FROM = os.environ.get('NOTIFY_FROM')
NOTIFY_TO = os.environ.get('NOTIFY_TO', '')  # comma-separated

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s [%(name)s] %(levelname)s: %(message)s'
LOG_DATEFORMAT = '%H:%M:%S'
LOG_SHORT_NAMES = True

LOGSTATS_INTERVAL = 60.0

# =============================================================================
# MISC
# =============================================================================

REQUEST_FINGERPRINTER_IMPLEMENTATION = '2.7'
TELNETCONSOLE_ENABLED = False
