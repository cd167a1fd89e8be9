from __future__ import annotations

import threading
from typing import List

from src.journal_util.errors import ApiClientError, NoContentError, StreamStartError
from src.journal_util.hubspot.models import JournalEntry, JournalPayload
from src.journal_util.replay.journal_stream import JournalStreamer
from src.journal_util.replay.rate_budget import RateBudget

from tests._fakes import FakeClock


OFFSET_A = "aaaaaaaa-0000-4000-8000-000000000001"
OFFSET_B = "bbbbbbbb-0000-4000-8000-000000000002"


def _entry(offset: str) -> JournalEntry:
    return JournalEntry(
        url=f"https://blobs.example.com/{offset}",
        expires_at=None,
        current_offset=offset,
        data=JournalPayload(offset=offset, journal_events=[], published_at=None),
    )


class ScriptedJournal:
    """get_next replays a script; the stream is cancelled once the script runs out"""

    def __init__(self, cancel: threading.Event, script: List[object], latest: object = None, clock=None):
        self.cancel = cancel
        self.script = list(script)
        self.latest = latest if latest is not None else _entry(OFFSET_A)
        self.clock = clock
        self.next_offsets: List[str] = []
        self.next_times: List[float] = []

    def get_latest(self) -> JournalEntry:
        if isinstance(self.latest, Exception):
            raise self.latest
        return self.latest

    def get_next(self, offset: str) -> JournalEntry:
        self.next_offsets.append(offset)
        if self.clock is not None:
            self.next_times.append(self.clock())
        step = self.script.pop(0)
        if not self.script:
            self.cancel.set()
        if isinstance(step, Exception):
            raise step
        return step


class Recorder:
    def __init__(self):
        self.entries: List[JournalEntry] = []
        self.errors: List[Exception] = []
        self.statuses: List[str] = []
        self.sleeps: List[float] = []

    def on_entry(self, entry: JournalEntry) -> None:
        self.entries.append(entry)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)

    def on_status(self, status: str) -> None:
        self.statuses.append(status)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def _run(journal: ScriptedJournal, recorder: Recorder, **kwargs):
    streamer = JournalStreamer(journal, sleep=recorder.sleep, **kwargs)
    handle = streamer.start_streaming(recorder.on_entry, recorder.on_error, recorder.on_status, cancel=journal.cancel)
    handle.join(5)
    return streamer, handle


def test_new_entry_delivered_once_between_empty_polls() -> None:
    cancel = threading.Event()
    journal = ScriptedJournal(cancel, [NoContentError(), NoContentError(), _entry(OFFSET_B), NoContentError()])
    recorder = Recorder()

    streamer, handle = _run(journal, recorder)

    assert [e.current_offset for e in recorder.entries] == [OFFSET_B]
    assert recorder.errors == []
    assert streamer.current_offset == OFFSET_B
    assert handle.current_offset == OFFSET_B
    assert journal.next_offsets == [OFFSET_A, OFFSET_A, OFFSET_A, OFFSET_B]
    assert recorder.sleeps == [2.0, 2.0, 2.0, 2.0]
    assert recorder.statuses[:2] == [
        "Getting initial latest journal entry...",
        "Starting stream from offset: aaaaaaaa...",
    ]


def test_same_offset_is_not_redelivered() -> None:
    cancel = threading.Event()
    journal = ScriptedJournal(cancel, [_entry(OFFSET_A)])
    recorder = Recorder()

    _run(journal, recorder)

    assert recorder.entries == []


def test_errors_are_reported_and_back_off() -> None:
    cancel = threading.Event()
    failure = ApiClientError("API Error: boom", 500)
    journal = ScriptedJournal(cancel, [failure])
    recorder = Recorder()

    streamer, _ = _run(journal, recorder)

    assert recorder.errors == [failure]
    assert recorder.sleeps == [4.0]
    assert streamer.current_offset == OFFSET_A


def test_initial_failure_returns_noop_handle() -> None:
    cancel = threading.Event()
    journal = ScriptedJournal(cancel, [], latest=ApiClientError("API Error: down", 503))
    recorder = Recorder()
    budget = RateBudget(clock=FakeClock())

    streamer = JournalStreamer(journal, budget=budget, sleep=recorder.sleep)
    handle = streamer.start_streaming(recorder.on_entry, recorder.on_error, recorder.on_status, cancel=cancel)

    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], StreamStartError)
    assert "Failed to get initial journal entry" in str(recorder.errors[0])
    assert handle.is_running is False
    assert budget.requests_this_window == 1

    handle()
    assert "Streaming stopped" not in recorder.statuses


def test_stop_is_idempotent() -> None:
    cancel = threading.Event()
    journal = ScriptedJournal(cancel, [NoContentError()])
    recorder = Recorder()

    _, handle = _run(journal, recorder)
    handle.stop()
    handle()

    assert recorder.statuses.count("Streaming stopped") == 1
    assert cancel.is_set()


def test_thirty_first_request_waits_for_window_rollover() -> None:
    clock = FakeClock()
    cancel = threading.Event()
    # initial fetch plus 30 next calls
    journal = ScriptedJournal(cancel, [NoContentError() for _ in range(30)], clock=clock)
    recorder = Recorder()

    def advancing_sleep(seconds: float) -> None:
        recorder.sleeps.append(seconds)
        clock.advance(seconds)

    streamer = JournalStreamer(journal, poll_interval=0.0, sleep=advancing_sleep, clock=clock)
    handle = streamer.start_streaming(recorder.on_entry, recorder.on_error, recorder.on_status, cancel=cancel)
    handle.join(5)

    start = journal.next_times[0]
    assert journal.next_times[:29] == [start] * 29
    assert journal.next_times[29] == start + 60.0
    assert "Rate limit reached, waiting 60s..." in recorder.statuses


def test_entry_whose_callback_fails_is_not_redelivered() -> None:
    cancel = threading.Event()
    journal = ScriptedJournal(cancel, [_entry(OFFSET_B), _entry(OFFSET_B)])
    recorder = Recorder()
    failure = RuntimeError("render failed")
    delivered = []

    def failing_on_entry(entry: JournalEntry) -> None:
        delivered.append(entry.current_offset)
        raise failure

    streamer = JournalStreamer(journal, sleep=recorder.sleep)
    handle = streamer.start_streaming(failing_on_entry, recorder.on_error, recorder.on_status, cancel=cancel)
    handle.join(5)

    assert delivered == [OFFSET_B]
    assert recorder.errors == [failure]
    assert streamer.current_offset == OFFSET_B
    assert recorder.sleeps == [4.0, 2.0]
