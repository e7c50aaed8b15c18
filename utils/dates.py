"""Calendar date validation for photo created dates (YYYY-MM-DD)."""

import re

# YYYY-MM-DD with a real month and day-of-month range
CREATED_DATE_RE = re.compile(r"^\d{4}-(0[1-9]|1[012])-(0[1-9]|[12][0-9]|3[01])$")


def is_valid_created_date(value):
    return isinstance(value, str) and CREATED_DATE_RE.fullmatch(value) is not None
