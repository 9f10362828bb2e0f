# app/clients/base.py

"""
원격 서비스 호출을 위한 공통 HTTP 클라이언트 모듈입니다.

- httpx.AsyncClient 로 원격 서비스를 호출하며, 요청 컨텍스트 헤더를 명시적으로 전달합니다.
- 일시적 실패(연결 오류, 타임아웃, 502/503/504)는 제한된 횟수만큼 선형 백오프로 재시도합니다.
  POST 처럼 멱등하지 않은 호출은 연결 자체가 이루어지지 않은 경우에만 재시도합니다.
- 연속 실패가 임계치에 도달하면 회로 차단기(pybreaker)가 열리고, 재설정 시간 동안 호출은 즉시 실패합니다.
- 원격 오류 응답은 로컬 오류 분류 체계(app.core.exceptions)로 변환합니다.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
import pybreaker
from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core import exceptions as exc
from app.core.config import settings
from app.core.context import RequestContext

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)

_RETRYABLE_STATUS = {502, 503, 504}
_IDEMPOTENT_METHODS = {"GET", "HEAD", "PUT", "DELETE", "OPTIONS"}


# =============================================================================
# 1. 회로 차단기 (pybreaker)
# =============================================================================
# 업무 오류(4xx)는 원격 서비스가 정상 동작한 결과이므로 실패로 세지 않습니다.
BUSINESS_ERRORS = (
    exc.ValidationError,
    exc.UnauthorizedError,
    exc.ForbiddenError,
    exc.NotFoundError,
    exc.ConflictError,
)


class CircuitStateListener(pybreaker.CircuitBreakerListener):
    """
    상태 전이를 로그로 남기고, 회로가 열린 시각을 기록합니다.

    pybreaker 는 OPEN 상태에서 reset_timeout 이 지난 뒤 다음 호출을 HALF_OPEN 시험 호출로 처리합니다.
    비동기 호출은 pybreaker.call 안에서 실행할 수 없으므로, 호출 전에 이 시각으로 차단 여부를 판단하고
    결과는 호출이 끝난 뒤 pybreaker 에 기록합니다.
    """

    def __init__(self):
        self.opened_at = 0.0

    def state_change(self, cb, old_state, new_state):
        if new_state.name == pybreaker.STATE_OPEN:
            self.opened_at = time.monotonic()
            logger.warning("circuit %s: open after %s consecutive failures", cb.name, cb.fail_counter)
        else:
            logger.info("circuit %s: %s", cb.name, new_state.name)


def build_breaker(
    name: str,
    *,
    fail_max: Optional[int] = None,
    reset_timeout: Optional[float] = None,
) -> pybreaker.CircuitBreaker:
    return pybreaker.CircuitBreaker(
        fail_max=fail_max if fail_max is not None else settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        reset_timeout=reset_timeout if reset_timeout is not None else settings.CIRCUIT_BREAKER_RESET_SECONDS,
        exclude=list(BUSINESS_ERRORS),
        name=name,
    )


def _replay(error: Optional[Exception]) -> None:
    if error is not None:
        raise error


# =============================================================================
# 2. 원격 서비스 클라이언트
# =============================================================================
class RemoteServiceClient:
    """모든 원격 서비스 클라이언트의 기본 클래스입니다."""
    service_name: str = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        breaker: Optional[pybreaker.CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.REMOTE_RETRY_ATTEMPTS
        self.retry_backoff = retry_backoff if retry_backoff is not None else settings.REMOTE_RETRY_BACKOFF_SECONDS
        self.breaker = breaker or build_breaker(self.service_name)
        self._circuit = CircuitStateListener()
        self.breaker.add_listener(self._circuit)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout if timeout is not None else settings.REMOTE_TIMEOUT_SECONDS),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _backoff(self, attempt: int) -> None:
        if self.retry_backoff > 0:
            await asyncio.sleep(self.retry_backoff * attempt)

    def _check_circuit(self) -> None:
        """OPEN 이고 reset_timeout 이 지나지 않았으면 pybreaker.CircuitBreakerError 를 발생시킵니다."""
        if self.breaker.current_state != pybreaker.STATE_OPEN:
            return
        if time.monotonic() - self._circuit.opened_at < self.breaker.reset_timeout:
            raise pybreaker.CircuitBreakerError("Timeout not elapsed yet, circuit breaker still open")

    def _record(self, error: Optional[Exception] = None) -> None:
        """
        호출 결과를 pybreaker 에 기록합니다. error 가 None 이면 성공입니다.
        BUSINESS_ERRORS 는 pybreaker 의 exclude 로 성공으로 처리됩니다.
        """
        try:
            self.breaker.call(_replay, error)
        except (pybreaker.CircuitBreakerError, exc.ServiceError):
            pass

    async def request(
        self,
        method: str,
        path: str,
        context: Optional[RequestContext] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        원격 호출을 수행하고 응답을 반환합니다.

        연결 실패/타임아웃이 재시도 후에도 계속되면 RemoteUnavailableError 를 발생시킵니다.
        그 밖의 전송 오류(응답 디코딩 실패, 과도한 리다이렉트)는 BadGatewayError 입니다.
        상태 코드 해석은 호출자(각 클라이언트 메서드)의 몫입니다.
        """
        method = method.upper()
        try:
            self._check_circuit()
        except pybreaker.CircuitBreakerError as e:
            logger.warning("remote call short-circuited: %s %s %s", self.service_name, method, path)
            raise exc.RemoteUnavailableError(f"{self.service_name} service is unavailable (circuit open)") from e

        headers = context.forward_headers() if context is not None else {}
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._client.request(method, path, params=params, json=json, headers=headers)
            except httpx.TransportError as e:
                retryable = method in _IDEMPOTENT_METHODS or isinstance(e, httpx.ConnectError)
                if retryable and attempt < self.retry_attempts:
                    logger.warning("remote call failed, retrying: %s %s %s attempt=%s error=%s", self.service_name, method, path, attempt, e)
                    await self._backoff(attempt)
                    continue
                logger.error("remote call failed: %s %s %s attempts=%s error=%s", self.service_name, method, path, attempt, e)
                error = exc.RemoteUnavailableError(f"{self.service_name} service is unavailable")
                self._record(error)
                raise error from e
            except httpx.RequestError as e:
                logger.error("remote call failed: %s %s %s error=%s", self.service_name, method, path, e)
                error = exc.BadGatewayError(f"Invalid response from {self.service_name} service")
                self._record(error)
                raise error from e

            if (
                response.status_code in _RETRYABLE_STATUS
                and method in _IDEMPOTENT_METHODS
                and attempt < self.retry_attempts
            ):
                logger.warning("remote call returned %s, retrying: %s %s %s attempt=%s", response.status_code, self.service_name, method, path, attempt)
                await self._backoff(attempt)
                continue

            self._record(None if response.is_success else self.decode_error(response))
            logger.debug("remote call: %s %s %s -> %s", self.service_name, method, path, response.status_code)
            return response

    # -------------------------------------------------------------------------
    # 응답 해석 헬퍼
    # -------------------------------------------------------------------------
    def decode_error(self, response: httpx.Response) -> exc.ServiceError:
        """
        원격 오류 응답을 로컬 오류로 변환합니다.

        - 4xx + errors 객체: RemoteFieldValidationError (필드별 메시지 맵)
        - 그 외 4xx: 같은 분류의 도메인 오류 (detail > title > "Remote error")
        - 503: RemoteUnavailableError, 그 밖의 5xx/예상치 못한 상태: BadGatewayError
        """
        status_code = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        if status_code < 400:
            return exc.BadGatewayError(f"Unexpected response from {self.service_name} service: {status_code}")

        errors = payload.get("errors")
        if status_code < 500 and isinstance(errors, dict) and errors:
            return exc.RemoteFieldValidationError(
                str(payload.get("detail") or "Remote validation failed"),
                errors={str(key): str(value) for key, value in errors.items()},
            )

        detail = payload.get("detail") or payload.get("title") or "Remote error"
        if not isinstance(detail, str):
            detail = str(detail)
        return exc.error_for_status(status_code, detail)

    def raise_for_error(self, response: httpx.Response) -> None:
        if not response.is_success:
            raise self.decode_error(response)

    def parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise exc.BadGatewayError(f"Invalid response body from {self.service_name} service")

    def parse_model(self, response: httpx.Response, model: Type[ResponseModel]) -> ResponseModel:
        try:
            return model.model_validate(self.parse_json(response))
        except PydanticValidationError:
            raise exc.BadGatewayError(f"Malformed response from {self.service_name} service")

    async def exists(self, method: str, path: str, context: Optional[RequestContext] = None) -> bool:
        """
        존재 여부 확인 호출: 2xx 는 True, 404 는 False, 그 외는 오류입니다.
        """
        response = await self.request(method, path, context)
        if response.is_success:
            return True
        if response.status_code == 404:
            return False
        raise self.decode_error(response)
