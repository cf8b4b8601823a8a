import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLocks:
    """In-process critical sections keyed by an arbitrary string.

    Serializes the read-check-write span of reservation writes for one
    station. Cross-process safety comes from the unique indexes on the
    bookings and reservations tables.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # one entry per station key, never evicted; bounded by the station count
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
        with lock:
            yield


def station_key(station_id: str) -> str:
    return f"station:{station_id}"


station_locks = KeyedLocks()
