"""
Tag and person-id normalization utilities for the album.

Tags are lowercase tokens made of letters, digits, '-' and '_'.
"""

# Largest value a SQLite INTEGER column can hold
MAX_SQLITE_INTEGER = 2 ** 63 - 1


def normalize_tag(tag, replace_spaces=False):
    """
    Normalize a single tag.

    Args:
        tag: Raw tag text
        replace_spaces: If True, inner spaces become '-' (used when creating tags)

    Returns:
        str: Normalized tag, or None if the tag is empty or invalid
    """
    if not isinstance(tag, str):
        return None
    tag = tag.strip().lower()
    if replace_spaces:
        tag = tag.replace(' ', '-')
    if not tag:
        return None
    if not all(c.isalnum() or c in '-_' for c in tag):
        return None
    return tag


def sanitize_tags(tags, replace_spaces=False):
    """
    Normalize a tag list, dropping invalid entries and duplicates.

    Args:
        tags: Iterable of raw tag strings
        replace_spaces: Passed through to normalize_tag

    Returns:
        list: Valid tags in first-seen order
    """
    result = []
    for tag in tags or []:
        normalized = normalize_tag(tag, replace_spaces=replace_spaces)
        if normalized and normalized not in result:
            result.append(normalized)
    return result


def sanitize_person_ids(person_ids):
    """
    Keep positive integer person ids, dropping duplicates.

    Accepts ints and ASCII digit strings; anything else is dropped, as are
    ids too large for a SQLite INTEGER.
    """
    result = []
    for pid in person_ids or []:
        if isinstance(pid, bool):
            continue
        if isinstance(pid, str):
            pid = pid.strip()
            if not (pid.isascii() and pid.isdigit()):
                continue
            pid = int(pid)
        if not isinstance(pid, int) or not 0 < pid <= MAX_SQLITE_INTEGER:
            continue
        if pid not in result:
            result.append(pid)
    return result


def string_to_tags(tags_str):
    """
    Convert comma-separated string to a list of raw values.

    Args:
        tags_str: Comma-separated string (query parameter)

    Returns:
        list: List of stripped, non-empty strings
    """
    if not tags_str:
        return []
    return [tag.strip() for tag in tags_str.split(',') if tag.strip()]
