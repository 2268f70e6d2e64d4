import asyncio
import logging
import time
from datetime import datetime
from typing import Mapping, Protocol

from .config import MINIMUM_REFRESH_SECS
from .errors import LoaderFailure
from .models import AsnRecord
from .store import SnapshotStore


class Loader(Protocol):
    async def load(self) -> tuple[Mapping[int, AsnRecord], datetime]: ...


class Refresher:
    """Background task: sleep, load a full snapshot, install it, repeat."""

    def __init__(self, loader: Loader, store: SnapshotStore, interval_secs: int):
        self.loader = loader
        self.store = store
        self.interval_secs = max(interval_secs, MINIMUM_REFRESH_SECS)
        self._log = logging.getLogger(__name__)
        self._task: asyncio.Task | None = None
        self.last_cycle_ms: int | None = None
        self.last_success: datetime | None = None
        self.fail_count: int = 0

    def start(self):
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task:
            self._task.cancel()
            # wait() does not re-raise the task's own cancellation, only ours
            await asyncio.wait([self._task])
            self._task = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_secs)
            await self.refresh_once()

    async def refresh_once(self) -> bool:
        """One Loading -> Installing/Failed transition. Never raises loader errors."""
        t0 = time.time()
        ok = False
        try:
            records, updated_at = await self.loader.load()
            self.store.replace(records, updated_at)
            self.last_success = updated_at
            self.fail_count = 0
            ok = True
        except LoaderFailure as e:
            self.fail_count += 1
            self._log.error(
                "refresh failed",
                extra={"event": "refresh.error", "extra_fields": {"code": e.code, "error": str(e)}},
            )
        except Exception as e:
            self.fail_count += 1
            self._log.exception(
                "refresh failed unexpectedly",
                extra={"event": "refresh.error", "extra_fields": {"error": repr(e)}},
            )
        finally:
            self.last_cycle_ms = int((time.time() - t0) * 1000)
            self._log.info(
                "refresh",
                extra={
                    "event": "refresh.run",
                    "extra_fields": {
                        "ok": ok,
                        "cycle_ms": self.last_cycle_ms,
                        "interval_s": self.interval_secs,
                        "retry": self.fail_count,
                    },
                },
            )
        return ok
