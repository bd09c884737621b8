"""
Record identity helpers
"""

import threading
import time

PROJECT_ID_WIDTH = 5


class TimeBasedIdGenerator:
    """Millisecond timestamp ids, strictly increasing within one process"""

    def __init__(self):
        self._lock = threading.Lock()
        self._last = 0

    def next_id(self) -> str:
        with self._lock:
            candidate = int(time.time() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)


time_ids = TimeBasedIdGenerator()


def generate_time_id() -> str:
    return time_ids.next_id()


def format_project_id(counter: int) -> str:
    """Zero-padded sequential project id, e.g. 7 -> '00007'"""
    return str(int(counter)).zfill(PROJECT_ID_WIDTH)
