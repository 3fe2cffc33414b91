import traceback
from typing import Any, Callable, Dict, Optional
from fastapi import Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, DatabaseError
from pydantic import ValidationError as PydanticValidationError

from globalmoves.core.errors import (
    BaseCustomException,
    ErrorResponse,
    ValidationError,
    ValidationErrorResponse,
)
from globalmoves.core.config import settings
from globalmoves.core.logging import get_logger

logger = get_logger(__name__)


def jsonable(data):
    """검증 에러 value 에 섞인 bytes 등을 JSON 으로 직렬화 가능한 값으로 변환"""
    return jsonable_encoder(data, custom_encoder={bytes: lambda v: v.decode("utf-8", "replace")})


def error_json(
    error: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details, status_code=status_code)
    return JSONResponse(status_code=status_code, content=jsonable(body.model_dump()), headers=headers)


def validation_error_json(errors) -> JSONResponse:
    body = ValidationErrorResponse(
        message="Request validation failed",
        validation_errors=[
            ValidationError(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                value=error.get("input")
            )
            for error in errors
        ]
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=jsonable(body.model_dump()))


def custom_exception_json(exc: BaseCustomException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable(exc.to_dict()),
        headers=getattr(exc, "headers", None)
    )


def _db_detail(exc: Exception) -> Optional[Dict[str, Any]]:
    """debug 모드에서만 드라이버 에러 메시지 노출"""
    if not settings.debug:
        return None
    return {"detail": str(getattr(exc, "orig", None) or exc)}


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    통합 에러 처리 미들웨어

    라우터 밖으로 전파된 예외를 표준 에러 응답으로 변환합니다.
    서비스 계층에서 변환하지 못한 유니크 제약 위반은 409 로 응답합니다.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except BaseCustomException as e:
            return custom_exception_json(e)

        except PydanticValidationError as e:
            # 응답 조립 중 발생한 검증 에러
            return validation_error_json(e.errors())

        except IntegrityError as e:
            logger.warning(f"Unhandled integrity error on {request.method} {request.url.path}: {e.orig}")
            return error_json("resource_conflict", "Resource conflict", status.HTTP_409_CONFLICT, _db_detail(e))

        except (OperationalError, DatabaseError) as e:
            logger.error(f"Database error: {type(e).__name__}: {e}")
            return error_json(
                "database_error",
                "Database connection or operation failed",
                status.HTTP_503_SERVICE_UNAVAILABLE,
                _db_detail(e)
            )

        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {e}", exc_info=True)
            details = None
            if settings.debug:
                details = {"exception": str(e), "type": type(e).__name__, "traceback": traceback.format_exc()}
            return error_json(
                "internal_server_error",
                "An unexpected error occurred",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                details
            )


def create_http_exception_handler():
    """HTTPException 을 표준 형식으로 변환하는 핸들러"""
    async def http_exception_handler(request: Request, exc):
        if isinstance(exc, BaseCustomException):
            return custom_exception_json(exc)

        # 프레임워크가 만든 HTTPException (401 Not authenticated, 404 라우트 없음 등)
        if isinstance(exc.detail, str):
            message, details = exc.detail, None
        else:
            message, details = "HTTP error occurred", {"detail": exc.detail}
        return error_json("http_error", message, exc.status_code, details, getattr(exc, "headers", None))

    return http_exception_handler


def create_validation_exception_handler():
    """요청 본문/경로 검증 실패(RequestValidationError) 핸들러"""
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return validation_error_json(exc.errors())

    return validation_exception_handler
