# app/core/saga.py

"""
원격 단계와 로컬 단계로 구성된 쓰기 작업(사가)의 상태 기계입니다.

    STARTED -> REMOTE_STEP_DONE -> LOCAL_STEP_DONE -> SUCCESS
                                -> LOCAL_STEP_FAILED -> COMPENSATION_ATTEMPTED -> FAILED
    STARTED -> FAILED

모든 전이는 로그로 남기며, 허용되지 않은 전이는 RuntimeError 를 발생시킵니다.
"""

import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

logger = logging.getLogger(__name__)


class SagaState(str, Enum):
    STARTED = "STARTED"
    REMOTE_STEP_DONE = "REMOTE_STEP_DONE"
    LOCAL_STEP_DONE = "LOCAL_STEP_DONE"
    LOCAL_STEP_FAILED = "LOCAL_STEP_FAILED"
    COMPENSATION_ATTEMPTED = "COMPENSATION_ATTEMPTED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


_TRANSITIONS: Dict[SagaState, FrozenSet[SagaState]] = {
    SagaState.STARTED: frozenset({SagaState.REMOTE_STEP_DONE, SagaState.FAILED}),
    SagaState.REMOTE_STEP_DONE: frozenset({SagaState.LOCAL_STEP_DONE, SagaState.LOCAL_STEP_FAILED}),
    SagaState.LOCAL_STEP_DONE: frozenset({SagaState.SUCCESS}),
    SagaState.LOCAL_STEP_FAILED: frozenset({SagaState.COMPENSATION_ATTEMPTED}),
    SagaState.COMPENSATION_ATTEMPTED: frozenset({SagaState.FAILED}),
    SagaState.SUCCESS: frozenset(),
    SagaState.FAILED: frozenset(),
}


class Saga:
    """사가 인스턴스 하나의 진행 상태를 추적합니다."""

    def __init__(self, name: str, *, trace_id: Optional[str] = None):
        self.name = name
        self.trace_id = trace_id
        self.state = SagaState.STARTED
        self.history: List[SagaState] = [SagaState.STARTED]
        logger.info("saga %s: %s", self.name, self.state.value, extra={"saga": self.name})

    @property
    def finished(self) -> bool:
        return self.state in (SagaState.SUCCESS, SagaState.FAILED)

    def advance(self, new_state: SagaState, **details) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"saga {self.name}: illegal transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)
        level = logging.WARNING if new_state in (SagaState.LOCAL_STEP_FAILED, SagaState.FAILED) else logging.INFO
        logger.log(level, "saga %s: %s", self.name, new_state.value, extra={"saga": self.name, **details})
