# app/core/exceptions.py

"""
서비스 전반에서 사용하는 오류 분류 체계와 FastAPI 예외 핸들러를 정의하는 모듈입니다.

모든 도메인 오류는 ServiceError 의 하위 클래스이며, HTTP 상태 코드와 제목(title),
상세 메시지(detail), 그리고 선택적으로 필드별 오류 맵(errors)을 가집니다.
응답 본문은 항상 {"title", "detail", "errors"?} 형태로 직렬화되므로,
원격 서비스의 오류 본문도 같은 방식으로 해석할 수 있습니다.
"""

import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# 1. 오류 분류 체계
# =============================================================================
class ServiceError(Exception):
    """모든 서비스 오류의 기본 클래스입니다."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    title: str = "Internal Server Error"

    def __init__(self, detail: Optional[str] = None, *, errors: Optional[Dict[str, str]] = None):
        self.detail = detail or self.title
        self.errors = errors
        super().__init__(self.detail)

    def to_body(self) -> dict:
        body = {"title": self.title, "detail": self.detail}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Bad Request"


class RemoteFieldValidationError(ValidationError):
    """원격 서비스가 필드별 검증 오류 맵을 반환한 경우입니다."""
    title = "Remote Validation Failed"


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Unauthorized"


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Forbidden"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Not Found"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    title = "Conflict"


class InternalServerError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Internal Server Error"


class BadGatewayError(ServiceError):
    """원격 서비스의 응답이 예상과 다르거나 해석할 수 없는 경우입니다."""
    status_code = status.HTTP_502_BAD_GATEWAY
    title = "Bad Gateway"


class RemoteUnavailableError(ServiceError):
    """원격 서비스에 연결할 수 없거나 회로 차단기가 열린 경우입니다."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    title = "Service Unavailable"


# 원격 응답 상태 코드 -> 로컬 오류 클래스 (도메인 오류는 같은 분류로 반영합니다)
REMOTE_STATUS_ERRORS = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    503: RemoteUnavailableError,
}


def error_for_status(status_code: int, detail: str) -> ServiceError:
    """원격 응답 상태 코드에 대응하는 로컬 오류 인스턴스를 생성합니다."""
    error_class = REMOTE_STATUS_ERRORS.get(status_code)
    if error_class is None:
        error_class = ValidationError if 400 <= status_code < 500 else BadGatewayError
    return error_class(detail)


# =============================================================================
# 2. FastAPI 예외 핸들러
# =============================================================================
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request failed: %s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
    else:
        logger.info("request rejected: %s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 본문/파라미터 검증 실패를 400 과 필드별 오류 맵으로 변환합니다."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(location) or "request"
        errors.setdefault(field, error.get("msg", "Invalid value"))
    body = ValidationError("Invalid data", errors=errors).to_body()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error: %s %s", request.method, request.url.path)
    body = InternalServerError("Unexpected error").to_body()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
