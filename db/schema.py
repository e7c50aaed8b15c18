"""
Database schema definitions and initialization for the album.

Single source of truth for all table and index definitions.
"""

import logging
import sqlite3

from db.connection import connect

# Schema definitions as (name, type_definition) tuples
# Type definition includes any defaults or constraints

USERS_COLUMNS = [
    ('id', 'INTEGER PRIMARY KEY AUTOINCREMENT'),
    ('username', 'TEXT NOT NULL UNIQUE'),
    ('email', 'TEXT'),
    ('is_admin', 'INTEGER DEFAULT 0 CHECK (is_admin IN (0, 1))'),
]

FILES_COLUMNS = [
    ('id', 'TEXT PRIMARY KEY'),
    ('path', 'TEXT NOT NULL'),
    ('upload_date', "TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))"),
    # YYYY-MM-DD, editable by owner/admin
    ('created_date', 'TEXT'),
    ('uploaded_by', 'INTEGER REFERENCES users(id) ON DELETE SET NULL'),
    ('location', 'TEXT'),
]

TAGS_COLUMNS = [
    ('tag', 'TEXT PRIMARY KEY'),
]

TAG_FILES_COLUMNS = [
    ('tag', 'TEXT NOT NULL REFERENCES tags(tag) ON DELETE CASCADE'),
    ('file_id', 'TEXT NOT NULL REFERENCES files(id) ON DELETE CASCADE'),
]

# Person tags; the bounding box is NULL when the person is not localized
USER_FILES_COLUMNS = [
    ('user_id', 'INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE'),
    ('file_id', 'TEXT NOT NULL REFERENCES files(id) ON DELETE CASCADE'),
    ('x', 'INTEGER CHECK (x IS NULL OR x >= 0)'),
    ('y', 'INTEGER CHECK (y IS NULL OR y >= 0)'),
    ('width', 'INTEGER CHECK (width IS NULL OR width >= 0)'),
    ('height', 'INTEGER CHECK (height IS NULL OR height >= 0)'),
]

# Index definitions as (name, table, column_expression)
INDEXES = [
    ('idx_files_sort_date', 'files', "COALESCE(created_date, date(upload_date)) DESC, id DESC"),
    ('idx_files_upload_date', 'files', 'upload_date DESC'),
    ('idx_files_uploaded_by', 'files', 'uploaded_by'),
    ('idx_tag_files_file', 'tag_files', 'file_id'),
    ('idx_tag_files_tag', 'tag_files', 'tag'),
    ('idx_user_files_file', 'user_files', 'file_id'),
    ('idx_user_files_user', 'user_files', 'user_id'),
]


def _build_create_table_sql(table_name, columns, constraints=None):
    """Build CREATE TABLE IF NOT EXISTS SQL from column definitions."""
    col_defs = [f'{name} {typedef}' for name, typedef in columns]
    if constraints:
        col_defs.extend(constraints)
    cols_sql = ',\n                    '.join(col_defs)
    return f'''CREATE TABLE IF NOT EXISTS {table_name} (
                    {cols_sql}
                )'''


def _migrate_add_missing_columns(conn, table_name, columns):
    """Add any missing columns to an existing table.

    Args:
        conn: SQLite connection
        table_name: Name of the table to migrate
        columns: List of (name, type_definition) tuples defining expected columns
    """
    cursor = conn.execute(f"PRAGMA table_info({table_name})")
    existing_cols = {row[1] for row in cursor.fetchall()}

    for col_name, col_type in columns:
        if col_name not in existing_cols:
            # Extract base type (without constraints/defaults for ALTER TABLE)
            base_type = col_type.split()[0] if col_type else 'TEXT'
            try:
                conn.execute(f"ALTER TABLE {table_name} ADD COLUMN {col_name} {base_type}")
                logging.info(f"Added column: {table_name}.{col_name}")
            except sqlite3.OperationalError as e:
                if 'duplicate column name' not in str(e).lower():
                    logging.warning(f"Could not add {table_name}.{col_name}: {e}")


def create_schema(conn):
    """Create all tables and indexes on an open connection (idempotent)."""
    conn.execute(_build_create_table_sql('users', USERS_COLUMNS))
    _migrate_add_missing_columns(conn, 'users', USERS_COLUMNS)

    conn.execute(_build_create_table_sql('files', FILES_COLUMNS))
    _migrate_add_missing_columns(conn, 'files', FILES_COLUMNS)

    conn.execute(_build_create_table_sql('tags', TAGS_COLUMNS))

    conn.execute(_build_create_table_sql(
        'tag_files',
        TAG_FILES_COLUMNS,
        constraints=['PRIMARY KEY (tag, file_id)']
    ))

    conn.execute(_build_create_table_sql(
        'user_files',
        USER_FILES_COLUMNS,
        constraints=['PRIMARY KEY (user_id, file_id)']
    ))
    _migrate_add_missing_columns(conn, 'user_files', USER_FILES_COLUMNS)

    for idx_name, table, column_expr in INDEXES:
        conn.execute(
            f'CREATE INDEX IF NOT EXISTS {idx_name} ON {table}({column_expr})'
        )
    conn.commit()


def init_database(db_path=None):
    """
    Initialize the database schema (idempotent).

    Creates all tables and indexes using CREATE IF NOT EXISTS.
    Safe to call on existing databases - automatically adds new columns.

    Args:
        db_path: Path to the SQLite database file (default: DB_PATH env)
    """
    conn = connect(db_path, row_factory=False)
    try:
        create_schema(conn)
    finally:
        conn.close()
