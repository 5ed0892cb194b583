import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from market_api.cache import cache
from market_api.config import settings
from market_api.database import dispose_engine
from market_api.errors import register_exception_handlers
from market_api.middleware import RequestLogMiddleware
from market_api.routers import articles, products, uploads

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Starting without Redis: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()
    await dispose_engine()


app = FastAPI(
    title="Market Board API",
    description="Articles and products with comments, images and keyset-paginated listings",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers
app.include_router(uploads.router)
app.include_router(articles.router)
app.include_router(products.router)

# Stored images; check_dir=False because the directory appears on first upload.
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/")
async def index():
    return {
        "message": "API Server",
        "endpoints": ["/api/articles", "/api/products", "/api/upload"],
    }


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "env": settings.APP_ENV,
        "cache": cache.stats,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("market_api.main:app", host="0.0.0.0", port=settings.API_PORT)
