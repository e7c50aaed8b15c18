"""
People router — users that can be tagged in photos.

"""

from typing import List

from fastapi import APIRouter, Depends

from api.auth import CurrentUser, require_authenticated
from api.database import get_db_connection
from api.models.photos import PersonSummary

router = APIRouter(tags=["people"])


@router.get("/api/people", response_model=List[PersonSummary])
async def api_people(user: CurrentUser = Depends(require_authenticated)):
    """All non-admin users, by username."""
    conn = get_db_connection()
    try:
        rows = conn.execute(
            "SELECT id, username FROM users WHERE is_admin = 0 ORDER BY username"
        ).fetchall()
        return [PersonSummary(id=r['id'], username=r['username']) for r in rows]
    finally:
        conn.close()
