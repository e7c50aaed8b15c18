"""
Photos router — single photo view, edit, delete, navigation and person tags.

"""

import logging
import os
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from api.auth import CurrentUser, ensure_owner_or_admin, require_authenticated
from api.database import get_db_connection, run_sync
from api.db_helpers import (
    encode_face_crops, encode_photo_file, find_or_create_user, get_photo_or_404,
    get_photo_people, get_photo_tags, upsert_person_tag,
)
from api.models.photos import (
    NeighborResponse, PeopleUpdateRequest, PersonInPhoto, PhotoDetail, PhotoUpdateRequest,
)
from feed import FEED_ORDER_BY
from utils import is_valid_created_date

router = APIRouter(tags=["photos"])

# Feed order (without filters) with a 1-based position per photo
_ORDERED_FILES_SQL = f"""
    SELECT f.id, ROW_NUMBER() OVER (ORDER BY {FEED_ORDER_BY}) AS position
    FROM (SELECT id, COALESCE(created_date, date(upload_date)) AS sort_date FROM files) f
"""


def _photo_detail(row, tags, image=None):
    return PhotoDetail(
        id=row['id'],
        upload_date=row['upload_date'],
        created_date=row['created_date'],
        uploaded_by=row['uploaded_by'],
        uploader=row['uploader'],
        location=row['location'],
        tags=tags,
        image=image,
    )


@router.get("/api/photos/{photo_id}", response_model=PhotoDetail)
async def api_get_photo(
    photo_id: str,
    user: CurrentUser = Depends(require_authenticated),
):
    """Photo info plus the full image as base-64."""
    conn = get_db_connection()
    try:
        row = get_photo_or_404(conn, photo_id)
        tags = get_photo_tags(conn, photo_id)
    finally:
        conn.close()

    try:
        image = await run_sync(encode_photo_file, row['path'])
    except OSError as e:
        logging.warning(f"Could not read image for photo {photo_id}: {e}")
        raise HTTPException(status_code=500, detail="Image could not be read")
    return _photo_detail(row, tags, image)


@router.patch("/api/photos/{photo_id}", response_model=PhotoDetail)
async def api_update_photo(
    photo_id: str,
    body: PhotoUpdateRequest,
    user: CurrentUser = Depends(require_authenticated),
):
    """Update created_date and/or location. Only the uploader or an admin may edit.

    An empty string clears the field.
    """
    updates = body.model_dump(exclude_unset=True)
    created_date = updates.get('created_date')
    if created_date and not is_valid_created_date(created_date):
        raise HTTPException(status_code=400, detail="created_date must be YYYY-MM-DD")

    conn = get_db_connection()
    try:
        row = get_photo_or_404(conn, photo_id)
        ensure_owner_or_admin(user, row['uploaded_by'])

        set_clauses = []
        params = []
        for column in ('created_date', 'location'):
            if column in updates:
                set_clauses.append(f"{column} = ?")
                params.append(updates[column] or None)
        if set_clauses:
            conn.execute(f"UPDATE files SET {', '.join(set_clauses)} WHERE id = ?", params + [photo_id])
            conn.commit()

        row = get_photo_or_404(conn, photo_id)
        return _photo_detail(row, get_photo_tags(conn, photo_id))
    finally:
        conn.close()


@router.delete("/api/photos/{photo_id}")
async def api_delete_photo(
    photo_id: str,
    user: CurrentUser = Depends(require_authenticated),
):
    """Delete a photo, its tag and person associations, and the stored file."""
    conn = get_db_connection()
    try:
        row = get_photo_or_404(conn, photo_id)
        ensure_owner_or_admin(user, row['uploaded_by'])
        conn.execute("DELETE FROM files WHERE id = ?", (photo_id,))
        conn.commit()
    finally:
        conn.close()

    try:
        os.remove(row['path'])
    except OSError as e:
        logging.warning(f"Photo {photo_id} deleted but file {row['path']} could not be removed: {e}")
    return {'success': True}


@router.get("/api/photos/{photo_id}/neighbor", response_model=NeighborResponse)
async def api_photo_neighbor(
    photo_id: str,
    step: int = Query(1),
    user: CurrentUser = Depends(require_authenticated),
):
    """Id of the next (step=1) or previous (step=-1) photo in feed order, or null."""
    if step not in (-1, 1):
        raise HTTPException(status_code=400, detail="step must be 1 or -1")

    conn = get_db_connection()
    try:
        get_photo_or_404(conn, photo_id)
        row = conn.execute(f"""
            WITH ordered AS ({_ORDERED_FILES_SQL})
            SELECT n.id FROM ordered cur
            JOIN ordered n ON n.position = cur.position + ?
            WHERE cur.id = ?
        """, (step, photo_id)).fetchone()
    finally:
        conn.close()
    return NeighborResponse(id=row['id'] if row else None)


@router.get("/api/photos/{photo_id}/people", response_model=List[PersonInPhoto])
async def api_photo_people(
    photo_id: str,
    user: CurrentUser = Depends(require_authenticated),
):
    """People tagged in a photo, each with a face crop (null when the crop fails)."""
    conn = get_db_connection()
    try:
        row = get_photo_or_404(conn, photo_id)
        people = get_photo_people(conn, photo_id)
    finally:
        conn.close()

    people = await run_sync(encode_face_crops, row['path'], people)
    return people


@router.put("/api/photos/{photo_id}/people", response_model=List[PersonInPhoto])
async def api_update_photo_people(
    photo_id: str,
    body: PeopleUpdateRequest,
    user: CurrentUser = Depends(require_authenticated),
):
    """Apply deletions, changes and additions to the people tagged in a photo.

    People are matched by username and created when unknown. Entries with an
    empty name are skipped.
    """
    conn = get_db_connection()
    try:
        row = get_photo_or_404(conn, photo_id)

        if body.delete:
            placeholders = ', '.join('?' for _ in body.delete)
            conn.execute(
                f"DELETE FROM user_files WHERE file_id = ? AND user_id IN ({placeholders})",
                [photo_id] + list(body.delete),
            )

        for person in body.change:
            name = person.name.strip()
            if not name:
                continue
            user_id = find_or_create_user(conn, name)
            box = person.bounds.as_binds() if person.bounds else [None, None, None, None]
            conn.execute(
                "UPDATE OR REPLACE user_files SET user_id = ?, x = ?, y = ?, width = ?, height = ? "
                "WHERE user_id = ? AND file_id = ?",
                [user_id] + box + [person.old_id, photo_id],
            )

        for person in body.add:
            name = person.name.strip()
            if not name:
                continue
            upsert_person_tag(conn, photo_id, find_or_create_user(conn, name), person.bounds)

        conn.commit()
        people = get_photo_people(conn, photo_id)
    except HTTPException:
        raise
    except Exception:
        conn.rollback()
        logging.exception(f"Updating people in photo {photo_id} failed")
        raise HTTPException(status_code=500, detail='Internal server error')
    finally:
        conn.close()

    people = await run_sync(encode_face_crops, row['path'], people)
    return people
