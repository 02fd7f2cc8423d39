import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.platform.db import models  # noqa: F401  registers every table on Base.metadata
from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.platform.config import settings
from app.platform.exceptions import add_exception_handlers

# Configure logging to show INFO level messages
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

app = FastAPI(
    title=settings.APP_NAME,
    description="Storefront API for digital products: accounts, reviews, polls and LiqPay checkout",
    version="1.0.0",
    debug=settings.DEBUG,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": settings.APP_NAME,
        "description": "Digital products storefront backend.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": settings.API_V1_PREFIX,
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
