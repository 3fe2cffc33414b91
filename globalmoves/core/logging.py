"""
구조화된 로깅

운영 환경에서는 한 줄에 JSON 하나씩 출력하고, 요청 ID/사용자 ID 는
contextvars 로 전파되어 같은 요청에서 남긴 모든 로그에 붙습니다.
도메인 로그는 log_*_event 헬퍼를 통해 event_type 별로 남깁니다.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Optional
from contextvars import ContextVar
from pathlib import Path

from globalmoves.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[int]] = ContextVar('user_id', default=None)

# LogRecord 기본 속성 (extra 로 취급하지 않음)
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime', 'taskName'}

DEV_FORMAT = '%(asctime)s %(levelname)-7s [%(name)s] %(message)s'


class StructuredFormatter(logging.Formatter):
    """LogRecord -> JSON 한 줄"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        context = {"request_id": request_id_var.get(), "user_id": user_id_var.get()}
        entry.update({key: value for key, value in context.items() if value is not None})

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        extra = {
            key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith('_')
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging():
    """루트 로거 구성. debug 모드에서는 사람이 읽기 쉬운 형식"""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(DEV_FORMAT) if settings.debug else StructuredFormatter())
    root.addHandler(console)

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        root.addHandler(_file_handler(log_dir / "breakout.log", logging.INFO))
        root.addHandler(_file_handler(log_dir / "breakout-error.log", logging.ERROR))

    for noisy in ("uvicorn", "sqlalchemy", "aiosqlite", "redis"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_context(request_id: str, user_id: Optional[int] = None):
    request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)


def clear_request_context():
    request_id_var.set(None)
    user_id_var.set(None)


# =============================================================================
# Event Logs
# =============================================================================

def log_event(
    logger: logging.Logger,
    event_type: str,
    message: str,
    level: int = logging.INFO,
    **fields: Any
):
    """event_type 태그를 단 구조화 로그 한 건"""
    logger.log(level, message, extra={"event_type": event_type, **fields})


def log_api_call(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[int] = None,
    **extra
):
    level = logging.WARNING if status_code >= 500 else logging.INFO
    log_event(
        logger, "api_call", f"{method} {path} - {status_code}", level,
        method=method, path=path, status_code=status_code,
        duration_ms=duration_ms, user_id=user_id, **extra
    )


def log_room_event(logger: logging.Logger, event: str, room_id: int, user_id: Optional[int] = None, **extra):
    """룸 상태 변경 (생성, 초대, 수락, 탈퇴, 삭제 등)"""
    log_event(logger, "room", f"room {room_id}: {event}", event=event, room_id=room_id, user_id=user_id, **extra)


def log_websocket_event(logger: logging.Logger, event: str, user_id: int, room_id: int, **extra):
    log_event(
        logger, "websocket", f"ws {event}: user {user_id} room {room_id}",
        event=event, user_id=user_id, room_id=room_id, **extra
    )


def log_authentication_event(
    logger: logging.Logger,
    event: str,
    user_id: Optional[int] = None,
    email: Optional[str] = None,
    success: bool = True,
    **extra
):
    outcome = "ok" if success else "failed"
    log_event(
        logger, "authentication", f"auth {event} {outcome}",
        logging.INFO if success else logging.WARNING,
        event=event, user_id=user_id, email=email, success=success, **extra
    )


def log_security_event(
    logger: logging.Logger,
    event: str,
    severity: str = "medium",
    user_id: Optional[int] = None,
    **extra
):
    """권한 거부, 잘못된 토큰 등"""
    log_event(
        logger, "security", f"security {event} ({severity})", logging.WARNING,
        event=event, severity=severity, user_id=user_id, **extra
    )
