# link-shortener/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List

import httpx
from beanie import PydanticObjectId
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from analytics import GeoLocator, RequestMetadata
from auth import get_current_user_id
from auth import router as auth_router
from config import Settings, get_settings
from database import close_mongo_connection, connect_to_mongo
from errors import ServiceError
from links import LinkService
from logging_config import configure_logging
from schemas import AnalyticsResponse, LinkCreateRequest, LinkResponse, MessageResponse

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application '%s' starting up.", settings.PROJECT_NAME)
    mongo_client, _ = await connect_to_mongo(settings)
    # One pooled client for geolocation lookups
    app.state.http_client = httpx.AsyncClient(timeout=settings.GEO_TIMEOUT)
    yield
    await app.state.http_client.aclose()
    await close_mongo_connection(mongo_client)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Shortens URLs for registered users and records click analytics.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)


def get_geolocator(request: Request, settings: Settings = Depends(get_settings)) -> GeoLocator:
    return GeoLocator(settings.GEO_API_URL, request.app.state.http_client)


def get_link_service(
    settings: Settings = Depends(get_settings),
    geolocator: GeoLocator = Depends(get_geolocator),
) -> LinkService:
    return LinkService(settings, geolocator)


# ---------- Error handling ----------


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    content = {"detail": exc.detail}
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    if exc.status_code >= 500:
        logger.error("%s at %s: %s", type(exc).__name__, request.url.path, exc.detail)
    else:
        logger.warning("%s %d at %s: %s", type(exc).__name__, exc.status_code, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "message": error.get("msg", "Invalid value")})
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTPException %d at %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def internal_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error at %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ---------- Routes ----------


@app.get("/health", tags=["Health Check"])
async def health_check():
    """
    Health check endpoint to verify service status.
    """
    return {"status": "ok", "message": "Link Shortener is running!"}


@app.get("/dashboard", include_in_schema=False)
async def dashboard():
    return FileResponse(os.path.join(STATIC_DIR, "index.html"), media_type="text/html")


@app.post("/", response_model=LinkResponse, status_code=status.HTTP_201_CREATED, tags=["Links"])
async def create_short_url(
    payload: LinkCreateRequest,
    response: Response,
    user_id: PydanticObjectId = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
    settings: Settings = Depends(get_settings),
):
    link, created = await service.create(user_id, payload.url, payload.custom_url)
    if not created:
        response.status_code = status.HTTP_200_OK
    return LinkResponse.from_link(link, settings)


@app.get("/", response_model=List[LinkResponse], tags=["Links"])
async def list_user_urls(
    user_id: PydanticObjectId = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
    settings: Settings = Depends(get_settings),
):
    links = await service.list_for_owner(user_id)
    return [LinkResponse.from_link(link, settings) for link in links]


@app.get("/analytics/{link_id}", response_model=AnalyticsResponse, tags=["Links"])
async def get_url_analytics(
    link_id: str,
    user_id: PydanticObjectId = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
    settings: Settings = Depends(get_settings),
):
    link = await service.get_analytics(link_id, user_id)
    return AnalyticsResponse.from_link(link, settings)


@app.delete("/{link_id}", response_model=MessageResponse, tags=["Links"])
async def delete_url(
    link_id: str,
    user_id: PydanticObjectId = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
):
    await service.delete(link_id, user_id)
    return MessageResponse(message="URL deleted")


# Must stay last: catch-all redirect route
@app.get("/{short_code}", tags=["Redirect"])
async def redirect_to_full_url(
    short_code: str,
    request: Request,
    service: LinkService = Depends(get_link_service),
):
    """
    Redirects to the full URL and records a click event. Recording is best
    effort: the redirect is issued even when it fails.
    """
    link = await service.resolve(short_code)

    metadata = RequestMetadata(
        remote_addr=request.client.host if request.client else None,
        forwarded_for=request.headers.get("x-forwarded-for"),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )
    try:
        await service.record_click(link, metadata)
    except Exception:
        logger.exception("Failed to record click for %s", short_code)

    return RedirectResponse(url=link.full_url, status_code=status.HTTP_302_FOUND)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
