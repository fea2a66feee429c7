from contextlib import asynccontextmanager

from fastapi import FastAPI
from backoffice.core.config import settings
from backoffice.core.logging import configure_logging
from backoffice.db.mongo import connect_to_mongo, close_mongo_connection
from backoffice.api.v1.api import api_router

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    try:
        yield
    finally:
        await close_mongo_connection()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}

app.include_router(api_router, prefix=settings.API_V1_STR)
