import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.routers.webhooks import webhooks_router
from src.routers.customer_sync import customer_sync_router

# Project-wide configuration
ALLOWED_ORIGINS = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin.strip()
]

ALLOWED_METHODS = ["GET", "POST"]
ALLOWED_HEADERS = ["*"]
ALLOWED_CREDENTIALS = True
ALLOWED_MAX_AGE = 86400


def configure_app(app: FastAPI):
    """
    Apply all middleware, routers, and project-wide settings to the FastAPI app.
    """
    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=ALLOWED_CREDENTIALS,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        max_age=ALLOWED_MAX_AGE,
    )
    # Routers
    app.include_router(webhooks_router)
    app.include_router(customer_sync_router)
