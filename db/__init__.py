"""
Album database package.

Re-exports public API for convenient imports.
"""

from db.connection import connect, get_connection, apply_pragmas, get_pragma_values, get_db_path, DEFAULT_DB_PATH
from db.schema import (
    init_database, create_schema,
    USERS_COLUMNS, FILES_COLUMNS, TAGS_COLUMNS,
    TAG_FILES_COLUMNS, USER_FILES_COLUMNS,
    INDEXES,
)
