"""
에러 응답 형식과 도메인 예외

모든 실패 응답은 {error, message, details, status_code} 형식이며, 입력 검증
실패는 details 대신 validation_errors 목록을 담습니다. 각 예외 클래스는
HTTP 상태 코드와 error 코드를 클래스 속성으로 가집니다.
"""

from typing import Optional, Dict, Any, List
from fastapi import HTTPException, status
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    status_code: int


class ValidationError(BaseModel):
    """필드 하나의 검증 실패"""
    field: str
    message: str
    value: Optional[Any] = None


class ValidationErrorResponse(BaseModel):
    error: str = "validation_error"
    message: str
    validation_errors: List[ValidationError]
    details: Optional[Dict[str, Any]] = None
    status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY


# =============================================================================
# Exceptions
# =============================================================================

class BaseCustomException(HTTPException):
    """도메인 예외 기본 클래스. 서브클래스는 status_code/error/default_message 만 바꿈"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_server_error"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(status_code=self.status_code, detail=self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return ErrorResponse(
            error=self.error,
            message=self.message,
            details=self.details,
            status_code=self.status_code
        ).model_dump()


class ValidationException(BaseCustomException):
    """입력 검증 실패 (필드별 오류 목록 포함)"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "validation_error"
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        validation_errors: Optional[List[ValidationError]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.validation_errors = validation_errors or []
        super().__init__(message, details)

    def to_dict(self) -> Dict[str, Any]:
        return ValidationErrorResponse(
            message=self.message,
            validation_errors=self.validation_errors,
            details=self.details
        ).model_dump()


class AuthenticationException(BaseCustomException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "authentication_error"
    default_message = "Authentication failed"


class AuthorizationException(BaseCustomException):
    """역할/소유권/멤버십 부족"""
    status_code = status.HTTP_403_FORBIDDEN
    error = "authorization_error"
    default_message = "Access denied"


class ResourceNotFoundException(BaseCustomException):
    status_code = status.HTTP_404_NOT_FOUND
    error = "resource_not_found"

    def __init__(
        self,
        resource: str = "Resource",
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message or f"{resource} not found", details or {"resource": resource})


class ConflictException(BaseCustomException):
    """중복 멤버십/초대/공유, 정원 초과"""
    status_code = status.HTTP_409_CONFLICT
    error = "resource_conflict"
    default_message = "Resource conflict"


class StateException(BaseCustomException):
    """현재 상태에서 허용되지 않는 전이 (이미 응답한 초대 등)"""
    status_code = status.HTTP_409_CONFLICT
    error = "invalid_state"
    default_message = "Operation not allowed in current state"


# =============================================================================
# Factories
# =============================================================================

def user_not_found_error(identifier: Optional[Any] = None) -> ResourceNotFoundException:
    return ResourceNotFoundException("User", details={"user": identifier} if identifier else None)


def room_not_found_error(room_id: Optional[int] = None) -> ResourceNotFoundException:
    return ResourceNotFoundException("Room", details={"room_id": room_id} if room_id else None)


def invalid_credentials_error() -> AuthenticationException:
    return AuthenticationException("Invalid email or password")


def invalid_token_error() -> AuthenticationException:
    return AuthenticationException("Invalid or expired token")


def email_already_exists_error() -> ConflictException:
    return ConflictException("Email already registered")


def not_room_member_error(room_id: Optional[int] = None) -> AuthorizationException:
    return AuthorizationException(
        "You are not a member of this room",
        details={"room_id": room_id} if room_id else None
    )


def room_full_error(max_members: int) -> ConflictException:
    return ConflictException("Room is full", details={"max_members": max_members})
