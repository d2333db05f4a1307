"""In-memory registry of migration runs started through the API."""

import threading
from typing import Dict, List, Optional

from ..models.migration import MigrationRun, MigrationStatus

ACTIVE_STATUSES = (MigrationStatus.PENDING, MigrationStatus.RUNNING)


class MigrationRunStore:
    """Runs by id. Lost on restart; the JSON reports are the durable record."""

    def __init__(self):
        self._runs: Dict[str, MigrationRun] = {}
        self._lock = threading.Lock()

    def try_register(self, run: MigrationRun) -> bool:
        """Register ``run`` unless another run is still in progress."""
        with self._lock:
            if any(r.status in ACTIVE_STATUSES for r in self._runs.values()):
                return False
            self._runs[run.id] = run
            return True

    def get(self, run_id: str) -> Optional[MigrationRun]:
        return self._runs.get(run_id)

    def list_all(self) -> List[MigrationRun]:
        """Newest first."""
        return sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._runs.clear()


migration_storage = MigrationRunStore()
