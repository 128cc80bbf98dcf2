"""Middleware package."""

from workhub.middleware.logging import LoggingMiddleware
from workhub.middleware.request_id import RequestIDMiddleware

__all__ = ["LoggingMiddleware", "RequestIDMiddleware"]
