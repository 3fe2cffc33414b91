"""
입력 검증

서비스 계층에서 호출하며 실패 시 ValidationException(422) 을 던집니다.
여러 필드를 함께 검증할 때는 validate_multiple_fields 로 오류를 모아서
한 번에 보고합니다.
"""

import re
from typing import Optional, List, Any, Callable

from .config import settings
from .errors import ValidationException, ValidationError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
# 탭/줄바꿈/캐리지리턴을 제외한 제어 문자
CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def _raise_if_any(summary: str, errors: List[ValidationError]) -> None:
    if errors:
        raise ValidationException(summary, validation_errors=errors)


def _fail(summary: str, field: str, message: str, value: Any = None):
    _raise_if_any(summary, [ValidationError(field=field, message=message, value=value)])


class Validator:
    """입력 검증 유틸리티"""

    @staticmethod
    def validate_required(value: Any, field_name: str) -> Any:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            _fail(f"{field_name} is required", field_name, "This field is required", value)
        return value

    @staticmethod
    def validate_string_length(
        value: str,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None
    ) -> str:
        errors = []
        if min_length and len(value) < min_length:
            errors.append(ValidationError(
                field=field_name, message=f"Must be at least {min_length} characters long", value=len(value)
            ))
        if max_length and len(value) > max_length:
            errors.append(ValidationError(
                field=field_name, message=f"Must be no more than {max_length} characters long", value=len(value)
            ))
        _raise_if_any(f"{field_name} length validation failed", errors)
        return value

    @staticmethod
    def validate_email_format(email: str, field_name: str = "email") -> str:
        """형식 확인 후 소문자로 정규화"""
        if not email or not EMAIL_PATTERN.match(email.strip()):
            _fail("Invalid email format", field_name, "Invalid email format", email)
        return email.strip().lower()

    @staticmethod
    def validate_password_strength(password: str, field_name: str = "password") -> str:
        """8~72자, 영문자와 숫자를 각각 하나 이상 포함 (bcrypt 는 72바이트까지만 사용)"""
        problems = []
        if len(password) < 8:
            problems.append("Password must be at least 8 characters long")
        elif len(password) > 72:
            problems.append("Password must be no more than 72 characters long")
        if not re.search(r'[a-zA-Z]', password):
            problems.append("Password must contain at least one letter")
        if not re.search(r'\d', password):
            problems.append("Password must contain at least one digit")

        _raise_if_any(
            "Password does not meet security requirements",
            [ValidationError(field=field_name, message=problem) for problem in problems]
        )
        return password

    @staticmethod
    def validate_enum(value: str, allowed_values: List[str], field_name: str) -> str:
        if value not in allowed_values:
            _fail(f"Invalid {field_name}", field_name, f"Must be one of: {', '.join(allowed_values)}", value)
        return value

    @staticmethod
    def validate_multiple_fields(validations: List[Callable[[], Any]]) -> List[Any]:
        """각 검증을 모두 실행하고 실패한 필드를 모아서 한 번에 보고"""
        errors = []
        results = []
        for validation in validations:
            try:
                results.append(validation())
            except ValidationException as e:
                errors.extend(e.validation_errors)

        _raise_if_any("Multiple validation errors", errors)
        return results

    @staticmethod
    def validate_room_text(value: Optional[str], field_name: str, max_length: int = 255) -> str:
        """룸 이름/분야: 공백 제거 후 비어 있으면 안 됨"""
        if value is None or value.strip() == "":
            _fail(f"{field_name} is required", field_name, "Must not be empty", value)
        return Validator.validate_string_length(value.strip(), field_name, max_length=max_length)

    @staticmethod
    def validate_max_members(max_members: Any, field_name: str = "max_members") -> int:
        low, high = settings.min_max_members, settings.max_max_members
        # bool 은 int 의 서브클래스
        valid = isinstance(max_members, int) and not isinstance(max_members, bool) \
            and low <= max_members <= high
        if not valid:
            _fail(
                f"{field_name} must be between {low} and {high}",
                field_name, f"Must be an integer between {low} and {high}", max_members
            )
        return max_members

    @staticmethod
    def validate_message_content(content: Optional[str], field_name: str = "content") -> str:
        """채팅 메시지: 공백 제거 후 1자 이상, 최대 길이 이하, 제어 문자 불가. 공백 제거한 값 반환"""
        if content is None:
            content = ""
        if not isinstance(content, str):
            _fail("Message content validation failed", field_name, "Message content must be a string",
                  type(content).__name__)
        trimmed = content.strip()
        limit = settings.message_max_length

        errors = []
        if not trimmed:
            errors.append(ValidationError(field=field_name, message="Message content cannot be empty"))
        if len(trimmed) > limit:
            errors.append(ValidationError(
                field=field_name, message=f"Message content must be no more than {limit} characters",
                value=len(trimmed)
            ))
        if CONTROL_CHARS.search(content):
            errors.append(ValidationError(
                field=field_name, message="Message content contains invalid control characters"
            ))

        _raise_if_any("Message content validation failed", errors)
        return trimmed

    @staticmethod
    def validate_optional_text(value: Optional[str], field_name: str, max_length: int = 500) -> Optional[str]:
        """선택 입력: 공백뿐이면 None"""
        if value is None or value.strip() == "":
            return None
        return Validator.validate_string_length(value.strip(), field_name, max_length=max_length)


def validate_user_registration(email: str, password: str, display_name: Optional[str] = None):
    """회원가입 입력 전체 검증"""
    return Validator.validate_multiple_fields([
        lambda: Validator.validate_required(email, "email"),
        lambda: Validator.validate_email_format(email),
        lambda: Validator.validate_required(password, "password"),
        lambda: Validator.validate_password_strength(password),
        lambda: Validator.validate_optional_text(display_name, "display_name", max_length=100),
    ])


def validate_private_room_creation(
    name: Optional[str],
    field: Optional[str],
    description: Optional[str] = None,
    max_members: Any = None
):
    """비공개 룸 생성 입력 검증 -> (name, field, description, max_members)"""
    if max_members is None:
        max_members = settings.default_max_members

    return Validator.validate_multiple_fields([
        lambda: Validator.validate_room_text(name, "name"),
        lambda: Validator.validate_room_text(field, "field", max_length=100),
        lambda: Validator.validate_optional_text(description, "description", max_length=1000),
        lambda: Validator.validate_max_members(max_members),
    ])
