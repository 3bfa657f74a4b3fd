"""In-memory navigation state: where the front end is and where it was sent."""

import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class Navigator:
    """Tracks the current path and records redirects requested by services.

    A front end passes ``on_navigate`` to follow redirects for real; the CLI
    and tests just read ``current_path`` and ``history``.
    """

    def __init__(self, initial_path: str = "/", on_navigate: Optional[Callable[[str], None]] = None):
        self.current_path = initial_path
        self.history: List[str] = [initial_path]
        self.last_from: Optional[str] = None
        self._on_navigate = on_navigate

    def navigate(self, path: str, *, replace: bool = False, from_path: Optional[str] = None) -> None:
        logger.debug("navigate %s -> %s", self.current_path, path)
        self.last_from = from_path
        if replace and self.history:
            self.history[-1] = path
        else:
            self.history.append(path)
        self.current_path = path
        if self._on_navigate:
            self._on_navigate(path)
