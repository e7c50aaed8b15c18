"""
Chronological grouping of a feed page into year/month headers and photos.

Grouping is a pure function of the page and the date of the record that
precedes it. Callers re-fetch that boundary record for every page, so no
state is shared between requests.
"""

from typing import Annotated, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field


class PhotoRecord(BaseModel):
    """A stored photo as the feed sees it."""
    id: str
    # Storage location; never sent to clients
    path: Optional[str] = Field(default=None, exclude=True)
    upload_date: str
    created_date: Optional[str] = None
    uploaded_by: Optional[int] = None
    location: Optional[str] = None
    # Base-64 image, attached only when the client asks for embedded images
    image: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            path=row['path'],
            upload_date=row['upload_date'],
            created_date=row['created_date'],
            uploaded_by=row['uploaded_by'],
            location=row['location'],
        )

    @property
    def sort_date(self) -> str:
        """created_date, falling back to the day of upload (YYYY-MM-DD)."""
        return self.created_date or self.upload_date[:10]


class YearMarker(BaseModel):
    kind: Literal['year'] = 'year'
    year: str


class MonthMarker(BaseModel):
    kind: Literal['month'] = 'month'
    month: str


class PhotoElement(BaseModel):
    kind: Literal['photo'] = 'photo'
    index: int
    photo: PhotoRecord


FeedElement = Annotated[Union[YearMarker, MonthMarker, PhotoElement], Field(discriminator='kind')]


def _year_month(date: str):
    # Zero-padded YYYY-MM-DD, so string comparison matches numeric order
    return date[0:4], date[5:7]


def group_feed(page: Sequence[PhotoRecord], boundary_date: Optional[str] = None,
               starting_index: int = 0) -> List[FeedElement]:
    """
    Interleave year and month markers with the photos of one page.

    Args:
        page: Records sorted by sort_date descending
        boundary_date: sort_date of the record just before this page, or None
                       for the first page
        starting_index: Feed position of the first record in the page

    Returns:
        list: YearMarker / MonthMarker / PhotoElement in display order
    """
    current_year, current_month = ('', '')
    if boundary_date:
        current_year, current_month = _year_month(boundary_date)

    elements: List[FeedElement] = []
    for position, record in enumerate(page):
        year, month = _year_month(record.sort_date)
        year_changed = year != current_year
        if year_changed:
            elements.append(YearMarker(year=year))
            current_year = year
        # A new year always restarts the month headers
        if year_changed or month != current_month:
            elements.append(MonthMarker(month=month))
            current_month = month
        elements.append(PhotoElement(index=starting_index + position, photo=record))
    return elements
