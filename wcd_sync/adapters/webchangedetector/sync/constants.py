"""Constants for inventory synchronization."""

from datetime import timedelta

CONTENT_PAGE_SIZE = 1000
TERM_PAGE_SIZE = 500

DEFAULT_TYPE_SLUG = "types"

RATE_GATE_OPTION = "wcd_last_urls_sync"
DEFAULT_RATE_INTERVAL = timedelta(hours=1)

DEFAULT_DEFER_DELAY = timedelta(seconds=5)
DEFAULT_JOB_RETENTION = timedelta(hours=24)
TASK_NAME_PREFIX = "wcd_async"

ONLY_FRONTPAGE_ALLOWANCE = "only_frontpage"

# Website details are refetched after this long unless force_refresh is given.
WEBSITE_DETAILS_TTL = timedelta(minutes=5)
