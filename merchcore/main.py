from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from merchcore.core.config import get_settings
from merchcore.core.errors import MerchandisingError
from merchcore.core.lifespan import lifespan
from merchcore.api.v1.routers.health import router as health_router
from merchcore.api.v1.routers.interactions import router as interactions_router
from merchcore.api.v1.routers.products import router as products_router
from merchcore.api.v1.routers.recommendations import router as recommendations_router
from merchcore.api.v1.routers.search import router as search_router
from merchcore.api.v1.routers.inventory import router as inventory_router
from merchcore.api.v1.routers.cart import router as cart_router
from merchcore.api.v1.routers.pricing import router as pricing_router
from merchcore.core.logging import configure_logging

from fastapi.middleware.cors import CORSMiddleware
import logging, os

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS from the env (CSV), e.g. ALLOWED_ORIGINS="https://shop.example.com,https://admin.example.com"
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins if allowed_origins else ["http://localhost:3000"],
    allow_credentials=False,                        # keep False for a simple preflight
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

# ------- Errors -------
@app.exception_handler(MerchandisingError)
async def merchandising_error_handler(request: Request, exc: MerchandisingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "details": exc.details})

# ------- Routes -------
app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(interactions_router, prefix=settings.api_prefix)      # event ingestion + stats
app.include_router(products_router, prefix=settings.api_prefix)          # browse, best-sellers, trending, similar
app.include_router(recommendations_router, prefix=settings.api_prefix)   # personalized + mixed
app.include_router(search_router, prefix=settings.api_prefix)
app.include_router(inventory_router, prefix=settings.api_prefix)
app.include_router(cart_router, prefix=settings.api_prefix)
app.include_router(pricing_router, prefix=settings.api_prefix)
