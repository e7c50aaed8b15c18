"""
Feed page service: filter, paginate, fetch the boundary row, group.
"""

import logging
import sqlite3
from typing import List, Optional

from pydantic import BaseModel

from feed.filters import FilterSpec, build_filter_fragments
from feed.grouping import FeedElement, PhotoRecord, group_feed
from feed.query import build_boundary_query, build_page_query


class FeedUnavailableError(Exception):
    """The feed could not be read from storage."""


class FeedPage(BaseModel):
    elements: List[FeedElement]
    offset: int
    count: int
    has_more: bool
    next_offset: int


def fetch_boundary_date(conn, conditions, joins, binds, page_start) -> Optional[str]:
    """sort_date of the record just before page_start in the same filtered order."""
    boundary = build_boundary_query(conditions, joins, binds, page_start)
    if boundary is None:
        return None
    query, all_binds = boundary
    row = conn.execute(query, all_binds).fetchone()
    return row['sort_date'] if row else None


def fetch_feed_page(conn, offset: int, count: int,
                    tag_filter: Optional[FilterSpec] = None,
                    person_filter: Optional[FilterSpec] = None) -> FeedPage:
    """
    Fetch and group one page of the photo feed.

    Args:
        conn: sqlite3 connection with sqlite3.Row row factory
        offset: Index of the first photo of the page
        count: Page size
        tag_filter: Optional FilterSpec over tags
        person_filter: Optional FilterSpec over person ids

    Returns:
        FeedPage; an empty element list means the end of the feed

    Raises:
        FeedUnavailableError: on any storage failure (no partial page)
    """
    if offset < 0 or count <= 0:
        raise ValueError(f"Invalid page window: offset={offset}, count={count}")

    conditions, joins, binds = build_filter_fragments(tag_filter, person_filter)
    query, page_binds = build_page_query(conditions, joins, binds, count, offset)

    try:
        rows = conn.execute(query, page_binds).fetchall()
        boundary_date = None
        if rows:
            boundary_date = fetch_boundary_date(conn, conditions, joins, binds, offset)
    except sqlite3.Error as e:
        logging.warning(f"Feed query failed (offset={offset}, count={count}): {e}")
        raise FeedUnavailableError("Feed unavailable") from e

    records = [PhotoRecord.from_row(row) for row in rows]
    elements = group_feed(records, boundary_date, starting_index=offset)

    return FeedPage(
        elements=elements,
        offset=offset,
        count=count,
        has_more=len(records) == count,
        next_offset=offset + len(records),
    )
