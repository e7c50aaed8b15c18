"""Pydantic models for photo and people endpoints."""

from pydantic import BaseModel, Field
from typing import Optional

from utils import BoundingBox


class FaceBounds(BoundingBox):
    """Bounding box as accepted from clients; coordinates cannot be negative."""
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)


class PersonInPhoto(BaseModel):
    id: int
    name: str
    bounds: Optional[BoundingBox] = None
    image: Optional[str] = None


class PhotoDetail(BaseModel):
    id: str
    upload_date: str
    created_date: Optional[str] = None
    uploaded_by: Optional[int] = None
    uploader: Optional[str] = None
    location: Optional[str] = None
    tags: list[str] = []
    image: Optional[str] = None


class PhotoUpdateRequest(BaseModel):
    created_date: Optional[str] = None
    location: Optional[str] = None


class NeighborResponse(BaseModel):
    id: Optional[str] = None


class PersonChange(BaseModel):
    old_id: int
    name: str = ""
    bounds: Optional[FaceBounds] = None


class PersonAdd(BaseModel):
    name: str = ""
    bounds: Optional[FaceBounds] = None


class PeopleUpdateRequest(BaseModel):
    change: list[PersonChange] = []
    delete: list[int] = []
    add: list[PersonAdd] = []


class PersonSummary(BaseModel):
    id: int
    username: str
