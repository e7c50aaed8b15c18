"""Pydantic models for upload and face detection endpoints."""

from pydantic import BaseModel
from typing import Optional

from api.models.photos import FaceBounds
from utils import BoundingBox


class UploadPerson(BaseModel):
    name: str
    bounds: Optional[FaceBounds] = None


class UploadFile(BaseModel):
    filename: str
    data: str  # base-64, optionally as a data: URL
    created_date: Optional[str] = None
    location: Optional[str] = None
    tags: list[str] = []
    people: list[UploadPerson] = []


class UploadRequest(BaseModel):
    files: list[UploadFile]


class UploadResult(BaseModel):
    filename: str
    id: Optional[str] = None
    faces: list[BoundingBox] = []
    error: Optional[str] = None


class UploadResponse(BaseModel):
    results: list[UploadResult]


class FaceDetectRequest(BaseModel):
    data: str


class FaceDetectResponse(BaseModel):
    faces: list[BoundingBox]
