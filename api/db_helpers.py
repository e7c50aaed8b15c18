"""
Database helper functions for the FastAPI API server.

"""

import logging

from fastapi import HTTPException

from utils import BoundingBox, encode_crop_b64, load_image_from_path, sanitize_tags
from api.config import ALBUM_CONFIG

PHOTO_INFO_SQL = """
    SELECT f.id, f.path, f.upload_date, f.created_date, f.uploaded_by, f.location,
           u.username AS uploader
    FROM files f
    LEFT JOIN users u ON u.id = f.uploaded_by
    WHERE f.id = ?
"""

PHOTO_PEOPLE_SQL = """
    SELECT u.id, u.username AS name, uf.x, uf.y, uf.width, uf.height
    FROM user_files uf
    JOIN users u ON u.id = uf.user_id
    WHERE uf.file_id = ?
    ORDER BY u.username
"""


def get_photo_or_404(conn, photo_id):
    """Fetch a photo row with uploader name, raising 404 if missing."""
    row = conn.execute(PHOTO_INFO_SQL, (photo_id,)).fetchone()
    if row is None:
        raise HTTPException(status_code=404, detail="Photo not found")
    return row


def get_photo_people(conn, photo_id):
    """Person tags on a photo as dicts with optional bounds."""
    people = []
    for row in conn.execute(PHOTO_PEOPLE_SQL, (photo_id,)).fetchall():
        people.append({
            'id': row['id'],
            'name': row['name'],
            'bounds': BoundingBox.from_row(row),
        })
    return people


def find_or_create_user(conn, username):
    """Return the id of the user with this name, creating the user if needed."""
    row = conn.execute("SELECT id FROM users WHERE username = ?", (username,)).fetchone()
    if row:
        return row[0]
    cursor = conn.execute("INSERT INTO users (username) VALUES (?)", (username,))
    return cursor.lastrowid


def upsert_person_tag(conn, photo_id, user_id, bounds=None):
    """Attach a person to a photo, replacing any earlier tag for that person."""
    box = bounds.as_binds() if bounds is not None else [None, None, None, None]
    conn.execute(
        "INSERT OR REPLACE INTO user_files (user_id, file_id, x, y, width, height) VALUES (?, ?, ?, ?, ?, ?)",
        [user_id, photo_id] + box,
    )


def attach_tags(conn, photo_id, raw_tags):
    """Create tags as needed and attach them to a photo. Returns the stored tags."""
    tags = sanitize_tags(raw_tags, replace_spaces=True)
    for tag in tags:
        conn.execute("INSERT OR IGNORE INTO tags (tag) VALUES (?)", (tag,))
        conn.execute("INSERT OR IGNORE INTO tag_files (tag, file_id) VALUES (?, ?)", (tag, photo_id))
    return tags


def get_photo_tags(conn, photo_id):
    rows = conn.execute(
        "SELECT tag FROM tag_files WHERE file_id = ? ORDER BY tag", (photo_id,)
    ).fetchall()
    return [r[0] for r in rows]


# --- IMAGE ENCODING ---

def _crop_settings():
    faces_cfg = ALBUM_CONFIG['faces']
    return {
        'padding': faces_cfg['padding_px'],
        'image_format': faces_cfg['image_format'],
        'quality': faces_cfg['image_quality'],
    }


def encode_photo_file(path, bounds=None):
    """Load an image from disk and return it (or a face crop) as base-64.

    Raises OSError when the file cannot be read.
    """
    img = load_image_from_path(path)
    return encode_crop_b64(img, bounds, **_crop_settings())


def encode_photo_file_or_none(path):
    """Like encode_photo_file, but a failure yields None so other images still render."""
    try:
        return encode_photo_file(path)
    except OSError as e:
        logging.warning(f"Could not read image {path}: {e}")
        return None


def encode_face_crops(path, people):
    """Attach a base-64 face crop to each person dict ('image'), isolating failures."""
    try:
        img = load_image_from_path(path)
    except OSError as e:
        logging.warning(f"Could not read image {path} for face crops: {e}")
        for person in people:
            person['image'] = None
        return people

    settings = _crop_settings()
    for person in people:
        try:
            person['image'] = encode_crop_b64(img, person['bounds'], **settings)
        except AssertionError:
            # Stored bounds break the crop contract; keep the traceback
            logging.exception(f"Invalid face bounds for person {person['id']} in {path}")
            person['image'] = None
        except (OSError, ValueError) as e:
            logging.warning(f"Face crop failed for person {person['id']} in {path}: {e}")
            person['image'] = None
    return people
