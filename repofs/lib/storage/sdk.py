"""Reference-counted lifecycle for shared provider SDK state.

Some SDK objects are expensive to create and safe to share between clients
(a botocore session loads every service model from disk on first use). A
``RefCountedSdk`` builds such an object when the first backend acquires it
and tears it down when the last backend releases it.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

__all__ = ["RefCountedSdk"]

T = TypeVar("T")


class RefCountedSdk(Generic[T]):
    """Shared SDK state with acquire/release reference counting.

    Args:
        name: Label used in log messages
        initialize: Builds the shared state on the first ``acquire``
        shutdown: Optional teardown run after the last ``release``

    Example:
        >>> sdk = RefCountedSdk("s3", botocore.session.get_session)
        >>> session = sdk.acquire()
        >>> ...
        >>> sdk.release()
    """

    def __init__(
        self,
        name: str,
        initialize: Callable[[], T],
        shutdown: Optional[Callable[[T], None]] = None,
    ) -> None:
        self.name = name
        self._initialize = initialize
        self._shutdown = shutdown
        self._lock = threading.Lock()
        self._count = 0
        self._state: Optional[T] = None

    @property
    def ref_count(self) -> int:
        with self._lock:
            return self._count

    def acquire(self) -> T:
        """Take a reference, initializing the shared state if needed."""
        with self._lock:
            if self._count == 0:
                logger.debug("Initializing %s SDK", self.name)
                self._state = self._initialize()
            self._count += 1
            assert self._state is not None
            return self._state

    def release(self) -> None:
        """Drop a reference; the last release tears the shared state down."""
        with self._lock:
            if self._count == 0:
                logger.warning("Unbalanced release of %s SDK ignored", self.name)
                return
            self._count -= 1
            if self._count > 0:
                return
            state, self._state = self._state, None
            logger.debug("Shutting down %s SDK", self.name)
            if self._shutdown is not None and state is not None:
                self._shutdown(state)
