import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from planner.config import get_settings
from planner.controllers.health import router as health_router
from planner.controllers.plans import router as plans_router
from planner.errors import register_exception_handlers
from planner.lifespan import cleanup_resources, setup_resources
from planner.middleware import HTTPLogMiddleware


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)


settings = get_settings()

app = FastAPI(title="Planner API", version="1.0.0", lifespan=lifespan)
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_origin_regex=settings.cors.origins_regex or None,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.debug.request:
    logging.getLogger("planner.http").setLevel(logging.DEBUG)
    app.add_middleware(HTTPLogMiddleware)

app.include_router(health_router)
app.include_router(plans_router)
