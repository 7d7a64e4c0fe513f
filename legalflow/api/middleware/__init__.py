"""HTTP middleware for LegalFlow."""

from .request_log import RequestLogMiddleware

__all__ = ["RequestLogMiddleware"]
