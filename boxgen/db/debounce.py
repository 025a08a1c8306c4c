from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future

logger = logging.getLogger("boxgen.db.debounce")


class DebouncedWriter:
    """
    Coalesce write requests arriving within a short window.

    Each request gets its own future, resolved (or failed) by the
    write that actually covers it. Requests made while a write is
    pending join that write.

    Taking the batch, writing it and settling its futures happen under
    one lock. An owner that passes its own lock can therefore mutate
    and request atomically with respect to the write.
    """

    def __init__(
        self,
        write: Callable[[], None],
        delay: float = 0.1,
        lock: threading.RLock | None = None,
    ):
        """
        Args:
            write: Performs the write, raises on failure
            delay: Quiet period in seconds before writing
            lock: Reentrant lock shared with the owner of the written data
        """
        self._write = write
        self._delay = delay
        self._lock = lock or threading.RLock()
        self._timer: threading.Timer | None = None
        self._pending: list[Future[None]] = []
        self._writes = 0

    @property
    def write_count(self) -> int:
        """Number of writes performed so far."""
        return self._writes

    def request(self) -> Future[None]:
        """Schedule a write, restarting the quiet period."""
        future: Future[None] = Future()
        with self._lock:
            self._pending.append(future)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._delay, self._flush)
            self._timer.daemon = True
            self._timer.start()
        return future

    def flush(self) -> None:
        """Write immediately if anything is pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._flush()

    def _flush(self) -> None:
        with self._lock:
            batch, self._pending = self._pending, []
            self._timer = None
            if not batch:
                return

            self._writes += 1
            try:
                self._write()
            except Exception as e:
                logger.error("Write failed for %d pending request(s): %s", len(batch), e)
                for future in batch:
                    future.set_exception(e)
            else:
                for future in batch:
                    future.set_result(None)
