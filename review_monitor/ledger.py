
# EventStateStore: the persisted "has the user already been told" ledger.

# One JSON object on disk, change key → has-unacknowledged-event flag.
# Every write goes to a temp file first and is swapped in with os.replace,
# so a crash mid-write leaves the previous ledger intact.

import json
import logging
import os
from pathlib import Path

from review_monitor.config import EVENT_STATE_PATH

log = logging.getLogger(__name__)


class EventStateStore:

    def __init__(self, path: Path = EVENT_STATE_PATH) -> None:
        self.path = Path(path)
        self._states: dict[str, bool] = self._load()

    def _load(self) -> dict[str, bool]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Event state ledger at %s is unreadable, starting empty: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            log.warning("Event state ledger at %s has unexpected shape, starting empty", self.path)
            return {}
        return {str(k): bool(v) for k, v in data.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._states

    def get(self, key: str) -> bool:
        return self._states.get(key, False)

    def snapshot(self) -> dict[str, bool]:
        return dict(self._states)

    def set_all(self, records: dict[str, bool]) -> None:
        """Replace the whole ledger with `records`."""
        self._states = dict(records)
        self._save()

    def clear(self, key: str) -> None:
        """Acknowledge one change."""
        self._states[key] = False
        self._save()

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(self._states, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            # in-memory state stays authoritative until the next successful write
            log.warning("Could not persist event state ledger to %s: %s", self.path, exc)
