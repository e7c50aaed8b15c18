"""
Upload router — batch photo upload with tagging and face detection.

Each file in a batch is handled on its own executor worker; a failure is
reported in that file's result and never aborts the rest of the batch.
"""

import asyncio
import logging
import os
import sqlite3
import uuid

from fastapi import APIRouter, Depends, HTTPException

from api.auth import CurrentUser, require_authenticated
from api.config import ALBUM_CONFIG, get_album_dir
from api.database import get_db_connection, run_sync
from api.db_helpers import attach_tags, find_or_create_user, upsert_person_tag
from api.models.upload import UploadFile, UploadRequest, UploadResponse, UploadResult
from faces import detect_faces
from utils import decode_base64_payload, decode_image_bytes, get_exif_date, is_valid_created_date

router = APIRouter(tags=["upload"])


def _file_extension(filename):
    """Lowercased extension without the dot, or None."""
    ext = os.path.splitext(os.path.basename(filename))[1].lstrip('.').lower()
    return ext if ext and ext.isalnum() else None


def _insert_photo(conn, photo_id, path, item: UploadFile, created_date, user_id):
    conn.execute(
        "INSERT INTO files (id, path, created_date, uploaded_by, location) VALUES (?, ?, ?, ?, ?)",
        (photo_id, path, created_date, user_id, item.location or None),
    )
    attach_tags(conn, photo_id, item.tags)
    for person in item.people:
        name = person.name.strip()
        if not name:
            continue
        upsert_person_tag(conn, photo_id, find_or_create_user(conn, name), person.bounds)


def store_upload(item: UploadFile, user_id, album_dir) -> UploadResult:
    """
    Store one uploaded file: write it to the album directory, record it in the
    database in a single transaction, then run face detection.

    Returns:
        UploadResult with either id/faces or error set
    """
    result = UploadResult(filename=item.filename)

    ext = _file_extension(item.filename)
    if ext is None:
        result.error = "Missing file extension"
        return result

    try:
        data = decode_base64_payload(item.data)
        img = decode_image_bytes(data)
    except (ValueError, OSError) as e:
        logging.warning(f"Rejected upload {item.filename}: {e}")
        result.error = "File is not a readable image"
        return result
    except Exception:
        # Pillow raises non-OSError errors too, e.g. DecompressionBombError
        logging.exception(f"Could not decode upload {item.filename}")
        result.error = "File is not a readable image"
        return result

    if item.created_date:
        if not is_valid_created_date(item.created_date):
            result.error = "created_date must be YYYY-MM-DD"
            return result
        created_date = item.created_date
    else:
        created_date = get_exif_date(img)

    photo_id = str(uuid.uuid4())
    path = os.path.join(album_dir, f"{photo_id}.{ext}")

    try:
        os.makedirs(album_dir, exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)
    except OSError as e:
        logging.error(f"Could not write {path}: {e}")
        result.error = "File could not be stored"
        return result

    conn = None
    try:
        conn = get_db_connection()
        _insert_photo(conn, photo_id, path, item, created_date, user_id)
        conn.commit()
    except sqlite3.Error as e:
        if conn is not None:
            conn.rollback()
        logging.exception(f"Database insert failed for upload {item.filename}")
        try:
            os.remove(path)
        except OSError:
            logging.warning(f"Could not remove orphaned file {path}")
        result.error = f"Upload failed: {e}"
        return result
    finally:
        if conn is not None:
            conn.close()

    result.id = photo_id
    result.faces = detect_faces(img, settings=ALBUM_CONFIG['faces']['detector'])
    logging.info(f"Stored upload {item.filename} as {photo_id}")
    return result


@router.post("/api/upload", response_model=UploadResponse)
async def api_upload(
    body: UploadRequest,
    user: CurrentUser = Depends(require_authenticated),
):
    """Upload a batch of base-64 encoded photos. Results keep the request order."""
    if not body.files:
        raise HTTPException(status_code=400, detail="No files to upload")

    album_dir = get_album_dir()
    outcomes = await asyncio.gather(
        *(run_sync(store_upload, item, user.user_id, album_dir) for item in body.files),
        return_exceptions=True,
    )

    results = []
    for item, outcome in zip(body.files, outcomes):
        if isinstance(outcome, Exception):
            logging.error(f"Upload of {item.filename} failed: {outcome!r}")
            outcome = UploadResult(filename=item.filename, error="Upload failed")
        results.append(outcome)
    return UploadResponse(results=results)
