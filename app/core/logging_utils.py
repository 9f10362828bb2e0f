# app/core/logging_utils.py

"""
구조화(JSON) 로깅 설정 모듈입니다.

- 요청 단위 추적 ID(X-Trace-Id)를 contextvars 에 바인딩하여 모든 로그 레코드에 주입합니다.
- 서비스 이름을 함께 기록하여 여러 서비스의 로그를 한 곳에서 구분할 수 있도록 합니다.
- 추적 ID 는 로그에만 사용됩니다. 원격 호출 시의 헤더 전달은 RequestContext 를 통해 명시적으로 이루어집니다.
"""

import contextvars
import json
import logging
import sys
from typing import Any, Dict, Optional

_trace_id_ctx_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trace_id", default=None
)

# LogRecord 의 표준 속성 (extra 로 추가된 필드만 JSON 에 덧붙이기 위해 제외합니다)
_STANDARD_ATTRIBUTES = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}


class TraceContextFilter(logging.Filter):
    """로그 레코드에 trace_id 와 service 를 주입합니다."""

    def __init__(self, service: str) -> None:
        super().__init__()
        self.service = service

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_ctx_var.get()
        record.service = self.service
        return True


class JSONLogFormatter(logging.Formatter):
    """로그 레코드를 한 줄의 JSON 으로 직렬화합니다."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": record.__dict__.get("service"),
            "trace_id": record.__dict__.get("trace_id"),
        }

        for key, value in record.__dict__.items():
            if key in ("service", "trace_id"):
                continue
            if key.startswith("_") or key in _STANDARD_ATTRIBUTES:
                continue
            log_entry[key] = value

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


_configured = False


def configure_logging(level: str = "INFO", *, service: str = "hospital", json_output: bool = True) -> None:
    """
    루트 로거를 설정합니다. 애플리케이션 시작 시 한 번만 적용됩니다.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(service)s] [%(trace_id)s] %(name)s: %(message)s"
        ))
    handler.addFilter(TraceContextFilter(service))

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers = []
        logger.propagate = True

    _configured = True


def bind_trace_id(trace_id: Optional[str]) -> contextvars.Token:
    """현재 컨텍스트에 추적 ID 를 바인딩하고, 해제용 토큰을 반환합니다."""
    return _trace_id_ctx_var.set(trace_id)


def reset_trace_id(token: contextvars.Token) -> None:
    _trace_id_ctx_var.reset(token)


def get_trace_id() -> Optional[str]:
    return _trace_id_ctx_var.get()


__all__ = [
    "configure_logging",
    "bind_trace_id",
    "reset_trace_id",
    "get_trace_id",
    "JSONLogFormatter",
    "TraceContextFilter",
]
