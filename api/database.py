"""
Per-request database access for the API.

Routes either open a connection on the event loop for short queries, or
hand blocking work (page queries, image decoding) to run_sync.
"""

import asyncio
from functools import partial

from db import connect
from api.config import ALBUM_CONFIG


def get_db_connection():
    """Connection to the configured album database with sqlite3.Row rows.

    album.performance overrides the memory PRAGMAs when present.
    Caller must close it.
    """
    perf = ALBUM_CONFIG.get('performance', {})
    return connect(
        mmap_size_mb=perf.get('mmap_size_mb'),
        cache_size_mb=perf.get('cache_size_mb'),
    )


async def run_sync(fn, *args, **kwargs):
    """Run a blocking function on the default executor and await its result."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(fn, *args, **kwargs))
