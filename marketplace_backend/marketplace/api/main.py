import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.routes import (
    cart,
    categories,
    dashboard,
    health,
    inventory,
    orders,
    products,
    reviews,
    vendors,
    wishlist,
)
from marketplace.config import APP_NAME, CORS_ORIGINS
from marketplace.errors import MarketplaceError
from marketplace.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Service and dependency health checks."},
    {"name": "Products", "description": "Storefront catalog and vendor product management."},
    {"name": "Vendors", "description": "Vendor directory and profiles."},
    {"name": "Dashboard", "description": "Vendor sales figures."},
    {"name": "Categories", "description": "Categories and missing-category alerts."},
    {"name": "Reviews", "description": "Product reviews."},
    {"name": "Cart", "description": "Server-side cart pricing."},
    {"name": "Orders", "description": "Order placement and status lifecycle."},
    {"name": "Inventory", "description": "Vendor stock records."},
    {"name": "Wishlist", "description": "Customer wishlists."},
]

app = FastAPI(
    title=APP_NAME,
    description="Backend service for the multi-vendor marketplace (catalog, vendors, cart, orders, inventory).",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, "%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


for module in (health, products, vendors, dashboard, categories, reviews, cart, orders, inventory, wishlist):
    app.include_router(module.router)
