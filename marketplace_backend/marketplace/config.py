"""
Service settings read from the environment (and a local .env file, if present).

The database URL is resolved separately in `marketplace.db.session` because it has its
own lookup order (db_connection.txt, DATABASE_URL, local default).
"""

import os

from dotenv import load_dotenv

load_dotenv()

APP_NAME = os.getenv("APP_NAME", "Marketplace Backend API")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD").upper()
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 24))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 200))
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 10))
