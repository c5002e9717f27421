import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.db.capabilities import resolve_capabilities, set_capabilities
from app.db.mongo import db as mongo_db, ensure_indexes
from app.db.session import engine
from app.dms.replies import reply_scheduler
from app.users.api import router as users_router
from app.friends.apifriends import router as friends_router
from app.events.api import router as event_router
from app.dms.api import router as dms_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    set_capabilities(await resolve_capabilities(engine))
    await ensure_indexes(mongo_db)
    yield
    # Let pending simulated replies land before the loop goes away
    await reply_scheduler.drain()
    await engine.dispose()


app = FastAPI(title="NomadTable API", lifespan=lifespan)

app.include_router(users_router)
app.include_router(friends_router)
app.include_router(event_router)
app.include_router(dms_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable, try again"},
    )


@app.exception_handler(PyMongoError)
async def mongo_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"MongoDB error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable, try again"},
    )


@app.get("/")
async def root():
    return {"message": "NomadTable API"}


@app.get("/health")
async def health():
    return {"status": "ok"}
