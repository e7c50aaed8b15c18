"""
Paginated query assembly for the photo feed.

Only structural SQL is concatenated here; LIMIT and OFFSET are placeholders
whose values the caller appends to the bind list with paginate_binds().
"""

FEED_BASE_SELECT = (
    "SELECT DISTINCT f.id, f.path, f.upload_date, f.created_date, f.uploaded_by, f.location, "
    "COALESCE(f.created_date, date(f.upload_date)) AS sort_date "
    "FROM files f"
)

# id breaks ties between photos sharing a date so pages never overlap
FEED_ORDER_BY = "sort_date DESC, f.id DESC"


def assemble_query(base_select, conditions, joins, order_by=None, limit=None, offset=None):
    """
    Concatenate a SELECT with its joins, conditions, ordering and paging.

    Args:
        base_select: SELECT ... FROM ... text
        conditions: Boolean SQL fragments, AND-joined
        joins: JOIN clauses, in order
        order_by: ORDER BY expression, or None
        limit: Emit 'LIMIT ?' when not None
        offset: Emit 'OFFSET ?' when not None (requires limit)

    Returns:
        str: Query text
    """
    if offset is not None and limit is None:
        raise ValueError("OFFSET requires LIMIT")

    query = base_select
    if joins:
        query += " " + " ".join(joins)
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    if order_by:
        query += " ORDER BY " + order_by
    if limit is not None:
        query += " LIMIT ?"
    if offset is not None:
        query += " OFFSET ?"
    return query


def paginate_binds(binds, limit, offset):
    """Return the filter binds followed by limit and offset, in that order."""
    return list(binds) + [int(limit), int(offset)]


def build_page_query(conditions, joins, binds, limit, offset):
    """Build the feed page query and its full bind list."""
    query = assemble_query(FEED_BASE_SELECT, conditions, joins,
                           order_by=FEED_ORDER_BY, limit=limit, offset=offset)
    return query, paginate_binds(binds, limit, offset)


def build_boundary_query(conditions, joins, binds, page_start):
    """
    Build the lookup for the record immediately before page_start.

    Returns None when page_start is 0 (the first page has no boundary).
    """
    if page_start <= 0:
        return None
    query = assemble_query(FEED_BASE_SELECT, conditions, joins,
                           order_by=FEED_ORDER_BY, limit=1, offset=page_start - 1)
    return query, paginate_binds(binds, 1, page_start - 1)
