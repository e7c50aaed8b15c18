"""
FastAPI application factory for the family album API server.

"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup/shutdown hooks."""
    # Startup: make sure the schema exists
    from db import init_database, get_db_path
    init_database(get_db_path())
    yield
    # Shutdown: nothing to clean up (sqlite connections are per-request)


def create_app() -> FastAPI:
    """FastAPI application factory."""
    from api.config import ALBUM_CONFIG

    app = FastAPI(
        title="Album API",
        description="Family photo album: feed, photos, people and uploads",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALBUM_CONFIG['cors_origins'],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    from api.routers.feed import router as feed_router
    from api.routers.photos import router as photos_router
    from api.routers.people import router as people_router
    from api.routers.tags import router as tags_router
    from api.routers.upload import router as upload_router
    from api.routers.faces import router as faces_router

    app.include_router(feed_router)
    app.include_router(photos_router)
    app.include_router(people_router)
    app.include_router(tags_router)
    app.include_router(upload_router)
    app.include_router(faces_router)

    return app
