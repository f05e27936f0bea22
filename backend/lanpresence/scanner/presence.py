import threading
from typing import Iterable


class PresenceCache:
    """
    Set of user ids whose devices answered the latest completed scan.

    Writers take one lock and publish a new immutable set, so readers never
    wait and never observe a half-written cycle.
    """

    def __init__(self):
        self._write_lock = threading.Lock()
        self._present: frozenset[int] = frozenset()

    def mark_present(self, user_id: int) -> None:
        with self._write_lock:
            self._present = self._present | {user_id}

    def clear(self) -> None:
        with self._write_lock:
            self._present = frozenset()

    def replace(self, user_ids: Iterable[int]) -> None:
        """Clear and repopulate as one step."""
        new_set = frozenset(user_ids)
        with self._write_lock:
            self._present = new_set

    def is_present(self, user_id: int) -> bool:
        return user_id in self._present

    def snapshot(self) -> frozenset[int]:
        return self._present

    def __len__(self) -> int:
        return len(self._present)
