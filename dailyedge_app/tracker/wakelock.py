"""Screen wake lock backed by wakepy."""
from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any, Callable, Optional

from wakepy import keep

LOGGER = logging.getLogger(__name__)


def _presenting_mode() -> Any:
    return keep.presenting(on_fail="pass")


class SystemWakeLock:
    """Keeps the display awake while a study session runs.

    ``request`` enters a wakepy "presenting" mode and reports whether the
    platform actually activated it. When it did not, the mode is exited at
    once so nothing lingers; the timer then carries on without a lock.
    """

    def __init__(self, mode_factory: Callable[[], Any] = _presenting_mode) -> None:
        self.mode_factory = mode_factory
        self._stack: Optional[ExitStack] = None

    @property
    def held(self) -> bool:
        return self._stack is not None

    def request(self) -> bool:
        if self._stack is not None:
            return True
        stack = ExitStack()
        try:
            mode = stack.enter_context(self.mode_factory())
        except Exception:
            stack.close()
            raise
        if not getattr(mode, "active", False):
            LOGGER.info("Screen wake lock not available on this system")
            stack.close()
            return False
        self._stack = stack
        LOGGER.debug("Screen wake lock acquired")
        return True

    def release(self) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.close()
            LOGGER.debug("Screen wake lock released")
