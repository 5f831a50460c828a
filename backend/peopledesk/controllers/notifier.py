import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List, Optional

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    detail: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """
    User-visible notifications.

    Every notice is logged and kept in a bounded history; an optional sink
    forwards it to whatever presents notifications to the user.
    """

    def __init__(self, history_size: int = 100, sink: Optional[Callable[[Notice], None]] = None):
        self._history: Deque[Notice] = deque(maxlen=history_size)
        self._sink = sink

    @property
    def history(self) -> List[Notice]:
        return list(self._history)

    @property
    def last(self) -> Optional[Notice]:
        return self._history[-1] if self._history else None

    def notify(self, notice: Notice) -> Notice:
        level = logging.ERROR if notice.level is NoticeLevel.ERROR else logging.INFO
        text = notice.message if not notice.detail else f"{notice.message}: {notice.detail}"
        logger.log(level, text)
        self._history.append(notice)
        if self._sink is not None:
            self._sink(notice)
        return notice

    def success(self, message: str, detail: Optional[str] = None) -> Notice:
        return self.notify(Notice(NoticeLevel.SUCCESS, message, detail))

    def info(self, message: str, detail: Optional[str] = None) -> Notice:
        return self.notify(Notice(NoticeLevel.INFO, message, detail))

    def error(self, message: str, detail: Optional[str] = None) -> Notice:
        return self.notify(Notice(NoticeLevel.ERROR, message, detail))

    def clear(self) -> None:
        self._history.clear()
