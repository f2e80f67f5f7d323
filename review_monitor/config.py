import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

log = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS: int = 10

# minutes; the preference UI only offers these values
REFRESH_FREQUENCIES: tuple[int, ...] = (1, 5, 10, 30, 60)
DEFAULT_REFRESH_FREQUENCY: int = 1

GERRIT_BASE_URL: str = os.environ.get("GERRIT_BASE_URL", "http://localhost:8080")
CHANGE_LIST_QUERY: str = "status:open (owner:self OR reviewer:self)"

STATE_DIR: Path = Path(os.environ.get("REVIEW_MONITOR_HOME", Path.home() / ".review_monitor"))
EVENT_STATE_PATH: Path = STATE_DIR / "event_states.json"
PREFERENCES_PATH: Path = STATE_DIR / "preferences.json"


@dataclass(frozen=True)
class Preferences:
    notify_merge_conflict: bool = True
    notify_new_incoming_review: bool = False
    notify_review_events: bool = False
    poll_interval_minutes: int = DEFAULT_REFRESH_FREQUENCY
    show_own_changes_not_ready: bool = False


class ConfigStore:
    """
    JSON-file backed user toggles.

    Unknown keys in the file are ignored and a refresh frequency outside
    REFRESH_FREQUENCIES falls back to the default, so a hand-edited file can
    never stop the poller from starting.
    """

    def __init__(self, path: Path = PREFERENCES_PATH) -> None:
        self.path = Path(path)
        self.preferences = self.load()

    def load(self) -> Preferences:
        if not self.path.exists():
            return Preferences()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Could not read preferences from %s: %s", self.path, exc)
            return Preferences()
        if not isinstance(raw, dict):
            return Preferences()

        known = {f.name for f in fields(Preferences)}
        prefs = Preferences(**{k: v for k, v in raw.items() if k in known})
        return self._validated(prefs)

    def update(self, **changes) -> Preferences:
        self.preferences = self._validated(replace(self.preferences, **changes))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(asdict(self.preferences), indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
        return self.preferences

    @staticmethod
    def _validated(prefs: Preferences) -> Preferences:
        if prefs.poll_interval_minutes not in REFRESH_FREQUENCIES:
            log.warning(
                "Refresh frequency %r is not one of %s, using %d",
                prefs.poll_interval_minutes, REFRESH_FREQUENCIES, DEFAULT_REFRESH_FREQUENCY,
            )
            prefs = replace(prefs, poll_interval_minutes=DEFAULT_REFRESH_FREQUENCY)
        return prefs
