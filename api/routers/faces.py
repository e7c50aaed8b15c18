"""
Faces router — face detection on an image before it is uploaded.

"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.auth import CurrentUser, require_authenticated
from api.config import ALBUM_CONFIG
from api.database import run_sync
from api.models.upload import FaceDetectRequest, FaceDetectResponse
from faces import detect_faces
from utils import decode_base64_payload, decode_image_bytes

router = APIRouter(tags=["faces"])


def _detect(data):
    img = decode_image_bytes(decode_base64_payload(data))
    return detect_faces(img, settings=ALBUM_CONFIG['faces']['detector'])


@router.post("/api/faces", response_model=FaceDetectResponse)
async def api_detect_faces(
    body: FaceDetectRequest,
    user: CurrentUser = Depends(require_authenticated),
):
    """Bounding boxes of the faces found in a base-64 image (possibly none)."""
    try:
        faces = await run_sync(_detect, body.data)
    except (ValueError, OSError) as e:
        logging.warning(f"Face detection request rejected: {e}")
        raise HTTPException(status_code=400, detail="Payload is not a readable image")
    return FaceDetectResponse(faces=faces)
