from __future__ import annotations

import logging
import signal
import threading
from typing import Dict


logger = logging.getLogger(__name__)


def install_signal_handlers(stop_event: threading.Event) -> Dict[int, object]:
    """
    Install SIGINT/SIGTERM handlers that set the stop_event.

    Returns the handlers that were replaced so the caller can put them back
    with ``restore_signal_handlers``.
    """
    def handler(signum, frame):
        logger.info("Signal %s received. Stopping stream", signum)
        stop_event.set()

    previous: Dict[int, object] = {signal.SIGINT: signal.signal(signal.SIGINT, handler)}
    # SIGTERM may not exist on Windows
    sigterm = getattr(signal, "SIGTERM", None)
    if sigterm is not None:
        previous[sigterm] = signal.signal(sigterm, handler)
    return previous


def restore_signal_handlers(previous: Dict[int, object]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)
