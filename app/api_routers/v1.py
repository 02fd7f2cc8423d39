from fastapi import APIRouter

from app.features.auth.routes.auth import router as auth_router
from app.features.auth.routes.oauth import router as oauth_router
from app.features.health.routes.health import router as health_router
from app.features.payments.routes.payments import router as payments_router
from app.features.polls.routes.polls import router as polls_router
from app.features.products.routes.bought_products import router as bought_products_router
from app.features.products.routes.saved_products import router as saved_products_router
from app.features.reviews.routes.reviews import router as reviews_router

api_router = APIRouter()

# Register all feature routes
api_router.include_router(auth_router)
api_router.include_router(oauth_router)
api_router.include_router(payments_router)
api_router.include_router(reviews_router)
api_router.include_router(polls_router)
api_router.include_router(saved_products_router)
api_router.include_router(bought_products_router)
api_router.include_router(health_router)
