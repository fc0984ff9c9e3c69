"""HTTP boundary of the ingestion service."""

from clicktrail.api.server import CORS_HEADERS, build_router, create_app

__all__ = ["CORS_HEADERS", "build_router", "create_app"]
