"""
요청 로깅 미들웨어

요청마다 request id 를 정하고 (클라이언트가 보낸 X-Request-ID 우선) 응답
헤더로 돌려줍니다. 응답 상태/소요 시간은 api_call 로그로, 기준을 넘는 요청은
slow_request 경고로 남깁니다. WebSocket 연결은 이 미들웨어를 거치지 않습니다.
"""

import logging
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from globalmoves.core.logging import (
    get_logger,
    log_event,
    log_api_call,
    set_request_context,
    clear_request_context,
)

logger = get_logger(__name__)

REDACTED_HEADERS = {"authorization", "cookie", "x-api-key"}


def client_ip(request: Request) -> str:
    """프록시 헤더 -> 소켓 주소 순"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.headers.get("x-real-ip"):
        return request.headers["x-real-ip"]
    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, log_requests: bool = True, slow_request_threshold_ms: float = 1000):
        super().__init__(app)
        self.log_requests = log_requests
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_context(request_id)
        started = time.perf_counter()
        try:
            if self.log_requests:
                self._log_request(request)

            try:
                response = await call_next(request)
            except Exception as e:
                log_event(
                    logger, "api_error", f"{request.method} {request.url.path} failed", logging.ERROR,
                    method=request.method, path=request.url.path,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    error_type=type(e).__name__, error=str(e), client_ip=client_ip(request)
                )
                raise

            duration_ms = (time.perf_counter() - started) * 1000
            # get_current_user 가 인증 후 request.state.user_id 를 채움
            log_api_call(
                logger,
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                user_id=getattr(request.state, "user_id", None),
                query_params=dict(request.query_params) or None,
                client_ip=client_ip(request)
            )
            if duration_ms > self.slow_request_threshold_ms:
                log_event(
                    logger, "slow_request", f"Slow request: {request.method} {request.url.path}",
                    logging.WARNING,
                    method=request.method, path=request.url.path,
                    duration_ms=duration_ms, threshold_ms=self.slow_request_threshold_ms
                )

            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()

    def _log_request(self, request: Request):
        headers = {
            name: "***" if name.lower() in REDACTED_HEADERS else value
            for name, value in request.headers.items()
        }
        log_event(
            logger, "request_started", f"{request.method} {request.url.path}", logging.DEBUG,
            method=request.method, path=request.url.path, headers=headers, client_ip=client_ip(request)
        )
