from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import router as auth_router
from core import db, log, settings
from resources import router as resources_router
from search import router as search_router

log.configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process. A failure here aborts startup.
    await db.init_pool()
    try:
        if settings.apply_schema_on_startup():
            await db.apply_schema()
        yield
    finally:
        await db.close_pool()


app = FastAPI(title="Department Notice Board", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        messages.append(f"{location}: {err.get('msg')}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(messages) or "Invalid request."},
    )


@app.exception_handler(db.StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: db.StoreUnavailableError) -> JSONResponse:
    logger.error("request_failed path=%s reason=store_unavailable", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


@app.get("/health", tags=["health"])
async def health() -> dict:
    return {"ok": True}


app.include_router(auth_router.router, tags=["auth"])
# Must precede the resources router, whose /api/{resource_type} would match /api/search.
app.include_router(search_router.router, tags=["search"])
app.include_router(resources_router.router, tags=["resources"])
