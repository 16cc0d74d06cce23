"""
@file: webinar_sync/services/enhancement/result.py
@description: Обертка результата дополнения записи
@dependencies: pydantic
"""

from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class EnhancementStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class Enhanced(BaseModel, Generic[T]):
    """
    Результат дополнения одной записи.

    При FAILED value содержит исходную запись без изменений, reason - причину.
    SKIPPED означает, что дополнять было нечего, и ошибкой не считается.
    """

    value: T
    status: EnhancementStatus = EnhancementStatus.OK
    reason: Optional[str] = None

    @property
    def enhanced(self) -> bool:
        return self.status != EnhancementStatus.FAILED

    @classmethod
    def ok(cls, value: T) -> "Enhanced[T]":
        return cls(value=value, status=EnhancementStatus.OK)

    @classmethod
    def failed(cls, value: T, reason: str) -> "Enhanced[T]":
        return cls(value=value, status=EnhancementStatus.FAILED, reason=reason)

    @classmethod
    def skipped(cls, value: T, reason: str) -> "Enhanced[T]":
        return cls(value=value, status=EnhancementStatus.SKIPPED, reason=reason)


def unwrap(results: List[Enhanced]) -> List:
    return [result.value for result in results]


def summarize(results: List[Enhanced]) -> Dict[str, int]:
    """Счетчики по статусам для ответа API и истории синхронизации"""
    summary = {"total": len(results), "enhanced": 0, "failed": 0, "skipped": 0}
    for result in results:
        if result.status == EnhancementStatus.OK:
            summary["enhanced"] += 1
        elif result.status == EnhancementStatus.FAILED:
            summary["failed"] += 1
        else:
            summary["skipped"] += 1
    return summary
