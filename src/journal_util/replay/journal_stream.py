from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Optional

from src.journal_util.errors import NoContentError, StreamStartError
from src.journal_util.hubspot.journal import JournalApi
from src.journal_util.hubspot.models import JournalEntry
from src.journal_util.replay.rate_budget import RateBudget


logger = logging.getLogger(__name__)

POLL_INTERVAL_SECS = 2.0
MAX_REQUESTS_PER_MINUTE = 30

OnEntry = Callable[[JournalEntry], None]
OnError = Callable[[Exception], None]
OnStatus = Callable[[str], None]


class StreamHandle:
    """
    Returned by ``JournalStreamer.start_streaming``. Calling it (or ``stop()``)
    sets the cancel event; the poller notices at the top of its next iteration.
    """

    def __init__(
        self,
        cancel: threading.Event,
        on_status: OnStatus,
        streamer: Optional["JournalStreamer"] = None,
        thread: Optional[threading.Thread] = None,
    ):
        self.cancel = cancel
        self._on_status = on_status
        self._streamer = streamer
        self._thread = thread
        self._stopped = False
        self._lock = threading.Lock()

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self.cancel.set()
        if self._thread is not None:
            self._on_status("Streaming stopped")

    __call__ = stop

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self.cancel.is_set()

    @property
    def current_offset(self) -> Optional[str]:
        return self._streamer.current_offset if self._streamer else None


class JournalStreamer:
    """Polls the journal for entries published after the last seen offset"""

    def __init__(
        self,
        journal_api: JournalApi,
        budget: Optional[RateBudget] = None,
        poll_interval: float = POLL_INTERVAL_SECS,
        sleep: Optional[Callable[[float], object]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.journal_api = journal_api
        self.budget = budget or RateBudget(max_per_window=MAX_REQUESTS_PER_MINUTE, window_secs=60.0, clock=clock)
        self.poll_interval = poll_interval
        self._sleep = sleep
        self.current_offset: Optional[str] = None

    def start_streaming(
        self,
        on_entry: OnEntry,
        on_error: OnError,
        on_status: OnStatus,
        cancel: Optional[threading.Event] = None,
    ) -> StreamHandle:
        """
        Establish the starting offset from the latest entry, then poll on a
        worker thread until the returned handle is called or ``cancel`` is set.

        If the latest entry cannot be read, ``on_error`` is called and the
        returned handle is a no-op.
        """
        cancel = cancel or threading.Event()

        on_status("Getting initial latest journal entry...")
        try:
            initial = self.journal_api.get_latest()
        except Exception as e:
            logger.error("Failed to get initial journal entry: %s", e)
            error = StreamStartError(f"Failed to get initial journal entry: {e}")
            error.__cause__ = e
            on_error(error)
            return StreamHandle(cancel, on_status)
        finally:
            self.budget.record()

        self.current_offset = initial.current_offset
        on_status(f"Starting stream from offset: {self.current_offset[:8]}...")
        logger.info("Journal stream starting at offset %s", self.current_offset)

        thread = threading.Thread(
            target=self._poll,
            args=(on_entry, on_error, on_status, cancel),
            name="journal-stream",
            daemon=False,
        )
        handle = StreamHandle(cancel, on_status, streamer=self, thread=thread)
        thread.start()
        return handle

    def _poll(self, on_entry: OnEntry, on_error: OnError, on_status: OnStatus, cancel: threading.Event) -> None:
        sleep = self._sleep or cancel.wait

        while not cancel.is_set():
            if not self.budget.has_capacity():
                wait = self.budget.remaining_window()
                on_status(f"Rate limit reached, waiting {math.ceil(wait)}s...")
                sleep(wait)
                continue

            delay = self.poll_interval
            try:
                self._advance(on_entry)
            except NoContentError:
                # nothing published since current_offset
                pass
            except Exception as e:
                logger.warning("Error checking for new entries: %s", e)
                on_error(e)
                delay = self.poll_interval * 2

            sleep(delay)

        logger.info("Journal stream stopped at offset %s", self.current_offset)

    def _advance(self, on_entry: OnEntry) -> None:
        try:
            entry = self.journal_api.get_next(self.current_offset)
        finally:
            self.budget.record()

        if entry.current_offset != self.current_offset:
            # offset moves first: an entry whose callback raises is reported once, not redelivered
            self.current_offset = entry.current_offset
            on_entry(entry)
