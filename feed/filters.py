"""
Tag and person filter composition for feed queries.

A filter is a mode (HAS, ONLY, NOT) plus a list of values. Each filter turns
into SQL text fragments (conditions, joins) and a parallel list of bind
values. Values are never interpolated into the SQL text.
"""

import logging
from typing import List, Optional, Tuple

from utils.tags import sanitize_person_ids, sanitize_tags

HAS = 'HAS'
ONLY = 'ONLY'
NOT = 'NOT'
FILTER_MODES = (HAS, ONLY, NOT)


class FilterSpec:
    """A user-chosen filter: mode plus raw values (tags or person ids)."""
    __slots__ = ('mode', 'values')

    def __init__(self, mode, values=None):
        self.mode = mode.strip().upper() if isinstance(mode, str) else mode
        self.values = list(values or [])

    def __repr__(self):
        return f"FilterSpec({self.mode!r}, {self.values!r})"

    def __eq__(self, other):
        if not isinstance(other, FilterSpec):
            return NotImplemented
        return self.mode == other.mode and self.values == other.values


# Association table layout per filter dimension
_TAG_DIMENSION = {
    'table': 'tag_files',
    'alias': 'tf',
    'column': 'tag',
}
_PERSON_DIMENSION = {
    'table': 'user_files',
    'alias': 'uf',
    'column': 'user_id',
}


def _placeholders(values):
    return ', '.join('?' for _ in values)


def _add_dimension_filter(conditions, joins, binds, mode, values, dimension):
    """Append the fragments for one dimension. Unknown modes add nothing."""
    if mode not in FILTER_MODES:
        logging.debug(f"Ignoring filter with unknown mode {mode!r}")
        return

    table = dimension['table']
    alias = dimension['alias']
    column = dimension['column']
    marks = _placeholders(values)

    if mode == HAS:
        joins.append(f"JOIN {table} {alias} ON {alias}.file_id = f.id")
        conditions.append(f"{alias}.{column} IN ({marks})")
        binds.extend(values)
    elif mode == NOT:
        conditions.append(
            f"f.id NOT IN (SELECT file_id FROM {table} WHERE {column} IN ({marks}))"
        )
        binds.extend(values)
    elif mode == ONLY:
        # Exactly the given set: all of them present, nothing else present
        conditions.append(
            f"((SELECT COUNT(DISTINCT {column}) FROM {table} "
            f"WHERE file_id = f.id AND {column} IN ({marks})) = ? "
            f"AND NOT EXISTS (SELECT 1 FROM {table} "
            f"WHERE file_id = f.id AND {column} NOT IN ({marks})))"
        )
        binds.extend(values)
        binds.append(len(values))
        binds.extend(values)


def build_filter_fragments(tag_filter: Optional[FilterSpec] = None,
                           person_filter: Optional[FilterSpec] = None
                           ) -> Tuple[List[str], List[str], list]:
    """
    Build WHERE conditions, JOIN clauses and bind values for a feed query.

    Tag fragments always come before person fragments so that bind positions
    line up with placeholder positions.

    Args:
        tag_filter: FilterSpec over tag names, or None
        person_filter: FilterSpec over person (user) ids, or None

    Returns:
        tuple: (conditions, joins, binds)
    """
    conditions: List[str] = []
    joins: List[str] = []
    binds: list = []

    if tag_filter is not None:
        valid_tags = sanitize_tags(tag_filter.values)
        if valid_tags:
            _add_dimension_filter(conditions, joins, binds,
                                  tag_filter.mode, valid_tags, _TAG_DIMENSION)

    if person_filter is not None:
        valid_ids = sanitize_person_ids(person_filter.values)
        if valid_ids:
            _add_dimension_filter(conditions, joins, binds,
                                  person_filter.mode, valid_ids, _PERSON_DIMENSION)

    return conditions, joins, binds
