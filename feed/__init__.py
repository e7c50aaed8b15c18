"""
Album feed package.

Filtered, paginated, chronologically grouped photo feed.
"""

from feed.filters import FilterSpec, build_filter_fragments, HAS, ONLY, NOT, FILTER_MODES
from feed.query import (
    assemble_query, paginate_binds, build_page_query, build_boundary_query,
    FEED_BASE_SELECT, FEED_ORDER_BY,
)
from feed.grouping import (
    PhotoRecord, YearMarker, MonthMarker, PhotoElement, FeedElement, group_feed,
)
from feed.pages import FeedPage, FeedUnavailableError, fetch_feed_page, fetch_boundary_date
