from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

logger = logging.getLogger(__name__)

NotificationKind = Literal["info", "warn", "error"]

ErrorCode = Literal[
    "InsufficientResource",  # не хватает камней/зарядов/действий
    "InvariantViolation",  # лимит конвертаций, последняя атака, бафф того же типа
    "NotFound",  # нет баффа/подструктуры -> безопасный no-op
    "InvalidAmount",  # amount <= 0
]

INSUFFICIENT_RESOURCE: ErrorCode = "InsufficientResource"
INVARIANT_VIOLATION: ErrorCode = "InvariantViolation"
NOT_FOUND: ErrorCode = "NotFound"
INVALID_AMOUNT: ErrorCode = "InvalidAmount"


@dataclass
class Notification:
    kind: NotificationKind
    text: str


@dataclass
class OpResult:
    ok: bool
    code: Optional[ErrorCode] = None
    message: Optional[str] = None
    notifications: List[Notification] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    # строки для журнала боя (postLogEntry)
    log: List[str] = field(default_factory=list)

    def notify(self, kind: NotificationKind, text: str) -> "OpResult":
        self.notifications.append(Notification(kind=kind, text=text))
        return self

    def merge(self, other: "OpResult") -> "OpResult":
        self.notifications.extend(other.notifications)
        self.log.extend(other.log)
        return self


def ok(
    message: Optional[str] = None,
    *,
    info: Optional[str] = None,
    log: Optional[str] = None,
    **data: Any,
) -> OpResult:
    res = OpResult(ok=True, message=message, data=dict(data))
    if info:
        res.notify("info", info)
    if log:
        res.log.append(log)
    return res


def fail(
    code: ErrorCode,
    message: str,
    *,
    kind: NotificationKind = "warn",
    **meta: Any,
) -> OpResult:
    """Отказ без мутации: результат + предупреждение для UI."""
    logger.warning("%s: %s", code, message)
    res = OpResult(ok=False, code=code, message=message, data=dict(meta))
    res.notify(kind, message)
    return res


def noop_not_found(message: str, **meta: Any) -> OpResult:
    logger.warning("%s: %s", NOT_FOUND, message)
    return OpResult(ok=True, code=NOT_FOUND, message=message, data=dict(meta))
