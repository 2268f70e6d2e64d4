import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from .errors import StoreNotReady
from .models import AsnRecord, format_ts


@dataclass(frozen=True)
class Snapshot:
    records: Mapping[int, AsnRecord]  # asn -> record
    updated_at: datetime

    @property
    def updated_at_str(self) -> str:
        return format_ts(self.updated_at)


class SnapshotStore:
    """Holds the current Snapshot as one composite value.

    Records and timestamp live in the same immutable object, so swapping the
    reference is the whole update and readers always get one generation.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snap: Snapshot | None = None

    def set(self, snap: Snapshot) -> None:
        with self._lock:
            self._snap = snap

    def replace(self, records: Mapping[int, AsnRecord], updated_at: datetime) -> Snapshot:
        # build before taking the lock; the critical section is the swap only
        snap = Snapshot(records=records, updated_at=updated_at)
        self.set(snap)
        return snap

    def get(self) -> Snapshot:
        with self._lock:
            snap = self._snap
        if snap is None:
            raise StoreNotReady("no snapshot installed yet")
        return snap

    def ready(self) -> bool:
        with self._lock:
            return self._snap is not None

    def age_ms(self) -> int | None:
        with self._lock:
            snap = self._snap
        if snap is None:
            return None
        return int(time.time() * 1000) - int(snap.updated_at.timestamp() * 1000)
