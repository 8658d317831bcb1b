from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .config import get_settings
from .database import close_client, ensure_indexes, get_db
from .errors import register_error_handlers
from .log import get_logger
from .routes import routers

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes(get_db())
    yield
    close_client()


def create_app(lifespan=lifespan) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Storefront API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    for router in routers:
        app.include_router(router)

    @app.get("/")
    def read_root():
        return {"message": "Storefront backend running"}

    @app.get("/test")
    def test_database(db: Database = Depends(get_db)):
        try:
            collections = db.list_collection_names()
            return {"backend": "ok", "db": "ok", "collections": collections[:10]}
        except PyMongoError as e:
            logger.warning("Database check failed: %s", e)
            return {"backend": "ok", "db": f"error: {str(e)[:80]}"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
