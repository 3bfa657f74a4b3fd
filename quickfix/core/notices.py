"""
quickfix/core/notices.py
In-memory notice center: the user-facing feedback channel.

Services publish short notices (success, info, warning, error); whatever front
end is attached subscribes and renders them. Notices expire after their
``auto_close`` seconds; sticky ones stay until dismissed.

A keyed notice replaces the active notice with the same key, so a repeated
action shows its outcome again without stacking. Publishing with ``once=True``
drops the notice instead while an unexpired one with that key is showing, so a
burst of identical background failures shows once.
"""

import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 200


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    key: Optional[str] = None
    # seconds; None means the notice stays until dismissed
    auto_close: Optional[float] = 5.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def sticky(self) -> bool:
        return self.auto_close is None


Listener = Callable[[Notice], None]

_anon_keys = itertools.count(1)


class NoticeCenter:
    """
    Keeps the active notices and fans them out to listeners.

    Maps key -> (Notice, deadline) for everything not yet dismissed or expired;
    the deadline is None for sticky notices. Listeners are called synchronously
    in registration order. ``history`` keeps the last HISTORY_LIMIT notices.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, history_limit: int = HISTORY_LIMIT):
        self._clock = clock
        self._active: Dict[str, Tuple[Notice, Optional[float]]] = {}
        self._listeners: List[Listener] = []
        self._history: Deque[Notice] = deque(maxlen=history_limit)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _prune(self) -> None:
        now = self._clock()
        expired = [key for key, (_, deadline) in self._active.items() if deadline is not None and deadline <= now]
        for key in expired:
            del self._active[key]

    def publish(self, notice: Notice, *, once: bool = False) -> bool:
        """Publish a notice.

        Returns False only when ``once`` is set and an unexpired notice with the
        same key is still showing.
        """
        self._prune()
        key = notice.key or f"notice-{next(_anon_keys)}"
        if key in self._active:
            if once:
                logger.debug("notice.duplicate key=%s", key)
                return False
            del self._active[key]
        deadline = None if notice.auto_close is None else self._clock() + notice.auto_close
        self._active[key] = (notice, deadline)
        self._history.append(notice)
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.exception("notice listener failed")
        return True

    def success(self, message: str, *, key: Optional[str] = None, auto_close: Optional[float] = 3.0, once: bool = False) -> bool:
        return self.publish(Notice(NoticeLevel.SUCCESS, message, key=key, auto_close=auto_close), once=once)

    def info(self, message: str, *, key: Optional[str] = None, auto_close: Optional[float] = 5.0, once: bool = False) -> bool:
        return self.publish(Notice(NoticeLevel.INFO, message, key=key, auto_close=auto_close), once=once)

    def warning(self, message: str, *, key: Optional[str] = None, auto_close: Optional[float] = 5.0, once: bool = False) -> bool:
        return self.publish(Notice(NoticeLevel.WARNING, message, key=key, auto_close=auto_close), once=once)

    def error(self, message: str, *, key: Optional[str] = None, auto_close: Optional[float] = 5.0, once: bool = False) -> bool:
        return self.publish(Notice(NoticeLevel.ERROR, message, key=key, auto_close=auto_close), once=once)

    def dismiss(self, key: Optional[str] = None) -> None:
        """Dismiss one notice by key, or all active notices."""
        if key is None:
            self._active.clear()
        else:
            self._active.pop(key, None)

    @property
    def active(self) -> List[Notice]:
        self._prune()
        return [notice for notice, _ in self._active.values()]

    @property
    def history(self) -> List[Notice]:
        return list(self._history)

    def messages(self, level: Optional[NoticeLevel] = None) -> List[str]:
        """Messages of the recorded notices, optionally filtered by level."""
        return [n.message for n in self._history if level is None or n.level == level]
