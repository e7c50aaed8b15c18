"""
Feed router — filtered, paginated, chronologically grouped photo feed.

"""

import asyncio
import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.auth import CurrentUser, require_authenticated
from api.config import ALBUM_CONFIG
from api.database import get_db_connection, run_sync
from api.db_helpers import encode_photo_file_or_none
from feed import FeedPage, FeedUnavailableError, FilterSpec, PhotoElement, fetch_feed_page
from utils import string_to_tags

router = APIRouter(tags=["feed"])


def _parse_filter(mode: Optional[str], values: Optional[str]) -> Optional[FilterSpec]:
    """Build a FilterSpec from query parameters; sanitizing happens downstream."""
    if not mode or not values:
        return None
    return FilterSpec(mode, string_to_tags(values))


def _load_page(offset, count, tag_filter, person_filter) -> FeedPage:
    try:
        conn = get_db_connection()
    except sqlite3.Error as e:
        logging.warning(f"Feed database could not be opened: {e}")
        raise FeedUnavailableError("Feed unavailable") from e
    try:
        return fetch_feed_page(conn, offset, count, tag_filter, person_filter)
    finally:
        conn.close()


async def _embed_images(page: FeedPage):
    """Attach base-64 images to photo elements; a failed read leaves image as None."""
    photos = [el.photo for el in page.elements if isinstance(el, PhotoElement)]
    images = await asyncio.gather(*(run_sync(encode_photo_file_or_none, p.path) for p in photos))
    for photo, image in zip(photos, images):
        photo.image = image


@router.get("/api/feed", response_model=FeedPage)
async def api_feed(
    offset: int = Query(0, ge=0),
    count: Optional[int] = Query(None, ge=1),
    tag_mode: Optional[str] = None,
    tags: Optional[str] = None,
    person_mode: Optional[str] = None,
    people: Optional[str] = None,
    embed: bool = False,
    user: CurrentUser = Depends(require_authenticated),
):
    """
    One page of the feed.

    tags and people are comma separated; tag_mode / person_mode are HAS,
    ONLY or NOT. An empty element list marks the end of the feed.
    """
    feed_cfg = ALBUM_CONFIG['feed']
    count = min(count or feed_cfg['page_size'], feed_cfg['max_page_size'])
    tag_filter = _parse_filter(tag_mode, tags)
    person_filter = _parse_filter(person_mode, people)

    try:
        page = await run_sync(_load_page, offset, count, tag_filter, person_filter)
    except FeedUnavailableError:
        raise HTTPException(status_code=503, detail="Feed unavailable")

    if embed:
        await _embed_images(page)
    return page
