"""Storage for the flat usage counter record."""

import json
import threading
from pathlib import Path
from typing import Optional, Protocol

from imagestudio.models.stats import StatsRecord, utc_now_iso
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)


class StatsStore(Protocol):
    """Increment-and-read interface over the counter record."""

    def increment_views(self) -> StatsRecord: ...

    def increment_images(self, count: int = 1) -> StatsRecord: ...

    def read(self) -> StatsRecord: ...


class InMemoryStatsStore:
    """Process-local counters, used by tests."""

    def __init__(self, record: Optional[StatsRecord] = None):
        self._record = record or StatsRecord()
        self._lock = threading.Lock()

    def read(self) -> StatsRecord:
        return self._record.model_copy()

    def increment_views(self) -> StatsRecord:
        with self._lock:
            self._record = self._record.model_copy(
                update={"page_views": self._record.page_views + 1, "last_updated": utc_now_iso()}
            )
            return self.read()

    def increment_images(self, count: int = 1) -> StatsRecord:
        with self._lock:
            self._record = self._record.model_copy(
                update={
                    "images_generated": self._record.images_generated + count,
                    "last_updated": utc_now_iso(),
                }
            )
            return self.read()


class JsonFileStatsStore:
    """Counter record kept in a JSON file.

    Each increment is a read-modify-write of the whole file and is not
    safe across processes; fine for low-traffic counters only.
    """

    def __init__(self, path):
        self.path = Path(path)

    def read(self) -> StatsRecord:
        try:
            if self.path.exists():
                with open(self.path, "r", encoding="utf-8") as f:
                    return StatsRecord.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            logger.error(f"Error reading stats from {self.path}: {e}")
        return StatsRecord()

    def _save(self, record: StatsRecord) -> StatsRecord:
        record = record.model_copy(update={"last_updated": utc_now_iso()})
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(record.model_dump(by_alias=True), f, indent=2)
        except OSError as e:
            logger.error(f"Error saving stats to {self.path}: {e}")
        return record

    def increment_views(self) -> StatsRecord:
        record = self.read()
        return self._save(record.model_copy(update={"page_views": record.page_views + 1}))

    def increment_images(self, count: int = 1) -> StatsRecord:
        record = self.read()
        return self._save(
            record.model_copy(update={"images_generated": record.images_generated + count})
        )
