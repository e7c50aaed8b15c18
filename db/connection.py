"""
Database connection utilities for the album.

All connections go through connect(), which applies the same PRAGMA set
(WAL journal, busy timeout, foreign keys) everywhere.
"""

import json
import os
import sqlite3
from contextlib import contextmanager

DEFAULT_DB_PATH = os.environ.get('DB_PATH', 'album.db')
_CONFIG_PATH = os.environ.get(
    'ALBUM_CONFIG',
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'album_config.json'),
)

# Tuning knobs read from the config file, in MB
_DEFAULT_MMAP_SIZE_MB = 64
_DEFAULT_CACHE_SIZE_MB = 16

# Applied to every connection, in order
_STATIC_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA busy_timeout = 5000",
    # tag_files and user_files rows go away with their file
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
)


def get_db_path():
    """Resolve the database path, honouring a DB_PATH set after import."""
    return os.environ.get('DB_PATH', DEFAULT_DB_PATH)


def get_pragma_values():
    """
    Memory tuning from album_config.json.

    album.performance wins over the top-level performance section; missing
    or unreadable config falls back to the built-in defaults.
    """
    try:
        with open(_CONFIG_PATH) as f:
            config = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        config = {}
    perf = dict(config.get('performance', {}))
    perf.update(config.get('album', {}).get('performance', {}))
    return {
        'mmap_size': perf.get('mmap_size_mb', _DEFAULT_MMAP_SIZE_MB) * 1024 * 1024,
        'cache_size_kb': perf.get('cache_size_mb', _DEFAULT_CACHE_SIZE_MB) * 1000,
    }


def apply_pragmas(conn, mmap_size_mb=None, cache_size_mb=None):
    """Apply the standard PRAGMA settings to a connection.

    Args:
        conn: SQLite connection
        mmap_size_mb: Override mmap_size (MB). None = use config value.
        cache_size_mb: Override cache_size (MB). None = use config value.
    """
    values = get_pragma_values()
    if mmap_size_mb is not None:
        values['mmap_size'] = mmap_size_mb * 1024 * 1024
    if cache_size_mb is not None:
        values['cache_size_kb'] = cache_size_mb * 1000

    for statement in _STATIC_PRAGMAS:
        conn.execute(statement)
    # Negative cache_size is in KiB rather than pages
    conn.execute(f"PRAGMA cache_size = -{int(values['cache_size_kb'])}")
    conn.execute(f"PRAGMA mmap_size = {int(values['mmap_size'])}")


def connect(db_path=None, row_factory=True, **pragma_overrides):
    """Open a configured connection. Caller must close it."""
    conn = sqlite3.connect(db_path or get_db_path())
    apply_pragmas(conn, **pragma_overrides)
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_connection(db_path=None, row_factory=True):
    """
    Context manager around connect().

    Args:
        db_path: Path to the SQLite database file (default: DB_PATH env)
        row_factory: If True, rows are sqlite3.Row (key access)

    Yields:
        sqlite3.Connection
    """
    conn = connect(db_path, row_factory)
    try:
        yield conn
    finally:
        conn.close()
