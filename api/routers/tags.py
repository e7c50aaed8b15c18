"""
Tags router.

"""

from fastapi import APIRouter, Depends

from api.auth import CurrentUser, require_authenticated
from api.database import get_db_connection

router = APIRouter(tags=["tags"])


@router.get("/api/tags")
async def api_tags(user: CurrentUser = Depends(require_authenticated)):
    conn = get_db_connection()
    try:
        rows = conn.execute("SELECT tag FROM tags ORDER BY tag").fetchall()
        return {'tags': [r['tag'] for r in rows]}
    finally:
        conn.close()
