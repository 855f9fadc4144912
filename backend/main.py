import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import MongoClient
from starlette.exceptions import HTTPException as StarletteHTTPException

try:
    from backend.app.config import Settings, configure_logging, load_settings
    from backend.app.services.channels import ChannelResolver, extract_channel_identifier
    from backend.app.services.ingest import ChannelIngestService
    from backend.app.services.uploads import UploadEnumerator
    from backend.app.services.video_store import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, VideoStore
    from backend.app.services.youtube_api import YouTubeApiClient
except ModuleNotFoundError:
    from app.config import Settings, configure_logging, load_settings
    from app.services.channels import ChannelResolver, extract_channel_identifier
    from app.services.ingest import ChannelIngestService
    from app.services.uploads import UploadEnumerator
    from app.services.video_store import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, VideoStore
    from app.services.youtube_api import YouTubeApiClient

logger = logging.getLogger("channel-videos")

UNKNOWN_ERROR = "An unknown error occurred"
# Cursor.skip takes a signed 64-bit BSON integer.
MAX_SKIP = 2**63 - 1


# ---------------------------
# Helpers
# ---------------------------

def split_csv(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _parse_int(raw: str | None, default: int) -> int | None:
    value = (raw or "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return None


def parse_page_params(page: str | None, limit: str | None) -> tuple[int, int]:
    page_number = _parse_int(page, 1)
    if page_number is None or page_number < 1:
        raise HTTPException(status_code=400, detail="Invalid page number. Must be a positive integer.")

    page_size = _parse_int(limit, DEFAULT_PAGE_SIZE)
    if page_size is None or page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid limit. Must be an integer between 1 and {MAX_PAGE_SIZE}.",
        )
    if (page_number - 1) * page_size > MAX_SKIP:
        raise HTTPException(status_code=400, detail="Invalid page number. Page is out of range.")
    return page_number, page_size


# ---------------------------
# Dependencies
# ---------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> VideoStore:
    return request.app.state.store


def get_resolver(request: Request) -> ChannelResolver:
    return request.app.state.resolver


def get_ingest_service(request: Request) -> ChannelIngestService:
    return request.app.state.ingest


# ---------------------------
# Routes
# ---------------------------

router = APIRouter()


@router.get("/")
def index():
    return "Hello"


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/api/channel/videos")
def channel_videos(
    channel_url: str | None = Query(default=None, alias="channelUrl"),
    ingest: ChannelIngestService = Depends(get_ingest_service),
):
    """Fetch, store and categorize every upload of a single channel."""
    if not channel_url or not channel_url.strip():
        raise HTTPException(status_code=400, detail="Missing required query parameter: channelUrl")

    identifier = extract_channel_identifier(channel_url)
    if not identifier:
        raise HTTPException(
            status_code=400,
            detail="Invalid YouTube channel URL. Please provide a valid channel URL.",
        )

    report = ingest.ingest([identifier])
    return {"categories": [category.to_json() for category in report.categories]}


@router.get("/api/channels/videos")
def multiple_channel_videos(
    channel_urls: str | None = Query(default=None, alias="channelUrls"),
    ingest: ChannelIngestService = Depends(get_ingest_service),
    settings: Settings = Depends(get_settings),
):
    """
    Fetch up to ``max_channels_per_request`` channels concurrently, store their
    uploads and categorize the videos stored by this request.
    """
    if channel_urls is None:
        raise HTTPException(status_code=400, detail="Missing required query parameter: channelUrls")

    urls = split_csv(channel_urls)
    if not urls:
        raise HTTPException(status_code=400, detail="No valid channel URLs provided")

    limit = settings.max_channels_per_request
    if len(urls) > limit:
        raise HTTPException(status_code=400, detail=f"Maximum of {limit} channel URLs allowed")

    identifiers = []
    for url in urls:
        identifier = extract_channel_identifier(url)
        if identifier:
            identifiers.append(identifier)
        else:
            logger.warning("Ignoring invalid YouTube channel URL: %s", url)

    if not identifiers:
        raise HTTPException(status_code=400, detail="None of the provided channel URLs are valid YouTube channel URLs")

    report = ingest.ingest(identifiers)
    if not report.videos:
        raise HTTPException(status_code=404, detail="No videos found for the provided channels")

    return {
        "categories": [category.to_json() for category in report.categories],
        "channelIdentifiers": identifiers,
    }


@router.get("/api/channels/paginated-videos")
def paginated_channel_videos(
    channel_identifiers: str | None = Query(default=None, alias="channelIdentifiers"),
    category_id: str | None = Query(default=None, alias="categoryId"),
    page: str | None = None,
    limit: str | None = None,
    resolver: ChannelResolver = Depends(get_resolver),
    store: VideoStore = Depends(get_store),
):
    identifiers = split_csv(channel_identifiers)
    if not identifiers:
        raise HTTPException(status_code=400, detail="Missing required query parameter: channelIdentifiers")

    page_number, page_size = parse_page_params(page, limit)

    channel_ids = []
    for identifier in identifiers:
        resolution = resolver.resolve(identifier)
        if resolution.ok and resolution.channel_id not in channel_ids:
            channel_ids.append(resolution.channel_id)

    if not channel_ids:
        raise HTTPException(status_code=400, detail="Could not resolve any of the provided channel identifiers")

    result = store.list_videos(
        category_id=category_id or None,
        channel_ids=channel_ids,
        page=page_number,
        limit=page_size,
    )
    return result.to_json()


@router.get("/api/videos")
def all_videos(
    channel_title: str | None = Query(default=None, alias="channelTitle"),
    category_id: str | None = Query(default=None, alias="categoryId"),
    page: str | None = None,
    limit: str | None = None,
    store: VideoStore = Depends(get_store),
):
    page_number, page_size = parse_page_params(page, limit)
    result = store.list_videos(
        channel_title=(channel_title or "").strip() or None,
        category_id=category_id or None,
        page=page_number,
        limit=page_size,
    )
    return result.to_json()


# ---------------------------
# Error handlers
# ---------------------------

async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    messages = [str(error.get("msg")) for error in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(messages) or "Invalid request parameters"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error while processing %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or UNKNOWN_ERROR})


# ---------------------------
# App setup
# ---------------------------

def create_app(
    settings: Settings | None = None,
    youtube: YouTubeApiClient | None = None,
    store: VideoStore | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    youtube = youtube or YouTubeApiClient(settings.youtube_api_key, timeout=settings.youtube_api_timeout)

    mongo_client = None
    if store is None:
        mongo_client = MongoClient(settings.mongodb_uri)
        collection = mongo_client[settings.mongodb_database][settings.mongodb_collection]
        store = VideoStore(collection, ensure_indexes=False)

    resolver = ChannelResolver(youtube, cache_ttl=settings.channel_resolve_ttl)
    enumerator = UploadEnumerator(youtube, resolver)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if mongo_client is not None:
            store.ensure_indexes()
            logger.info("Using MongoDB collection %s.%s", settings.mongodb_database, settings.mongodb_collection)
        yield
        youtube.close()
        if mongo_client is not None:
            mongo_client.close()

    app = FastAPI(title="Channel Videos API", lifespan=lifespan)
    app.state.settings = settings
    app.state.youtube = youtube
    app.state.store = store
    app.state.resolver = resolver
    app.state.ingest = ChannelIngestService(enumerator, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=settings.cors_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
