"""
Custom middleware for the application
"""
import time
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
import structlog

logger = structlog.get_logger()

FORWARDED_HEADERS = ("X-Forwarded-For", "X-Real-IP", "CF-Connecting-IP", "X-Client-IP")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.time()
        client_ip = self._get_client_ip(request)

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=client_ip,
            user_id=request.headers.get("x-user-id"),
        )

        response = await call_next(request)
        process_time = time.time() - start_time

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=round(process_time, 4),
            client_ip=client_ip,
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP address, handling proxy headers"""
        for header in FORWARDED_HEADERS:
            if header in request.headers:
                # First address of a comma-separated chain
                ip = request.headers[header].split(",")[0].strip()
                if ip:
                    return ip
        return request.client.host if request.client else "unknown"
