"""Observability for the stopover search service.

JSON logging, request/hub context, in-process metrics and the ASGI
middleware that ties them to each HTTP request.
"""

__all__ = [
    "middleware",
    "metrics",
    "logger",
    "context",
]
