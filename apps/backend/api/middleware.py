"""
Middleware for request tracking and logging
"""
import time
import uuid
from typing import Callable, Dict, Any
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

import logging

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Adds a request id, logs request lifecycle and timing"""

    def __init__(self, app: ASGIApp, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests
        self.active_requests: Dict[str, Dict[str, Any]] = {}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        method = request.method
        path = request.url.path
        request.state.request_id = request_id

        start_time = time.time()
        self.active_requests[request_id] = {
            'endpoint': path,
            'start_time': start_time,
            'client': request.client.host if request.client else 'unknown'
        }
        quiet = path.endswith('/health') or not self.log_requests

        if not quiet:
            logger.info(f"Request started: {method} {path} - Request ID: {request_id}")

        try:
            response = await call_next(request)

            duration_ms = int((time.time() - start_time) * 1000)
            if not quiet:
                logger.info(f"Request completed: {method} {path} - Status: {response.status_code} - Duration: {duration_ms}ms - Request ID: {request_id}")

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(duration_ms)
            return response

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Request failed: {method} {path} - Error: {str(e)} - Duration: {duration_ms}ms - Request ID: {request_id}")
            raise

        finally:
            self.active_requests.pop(request_id, None)
