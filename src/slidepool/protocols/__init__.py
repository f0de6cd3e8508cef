"""Transports that plug into the scheduler as operations."""

from .http import FetchError, FetchResult, HttpFetcher, fetch_urls

__all__ = [
    "FetchError",
    "FetchResult",
    "HttpFetcher",
    "fetch_urls",
]
