from __future__ import annotations

from server.api.middleware.errors import build_exception_handler, build_malformed_id_handler
from server.api.middleware.request_id import build_request_id_middleware

__all__ = ["build_exception_handler", "build_malformed_id_handler", "build_request_id_middleware"]
